class AuctionHouseError(Exception):
    """Base exception for faults in the auction house (never a business rejection)."""
    pass


class ConcurrentUpdateError(AuctionHouseError):
    """Raised when a CAS-guarded write keeps losing to concurrent writers."""
    pass


class AuctionNotFoundError(AuctionHouseError):
    """Raised when an operation addresses an auction id that does not exist."""
    pass


class LedgerError(AuctionHouseError):
    """Raised when a balance or inventory adjustment cannot be applied."""
    pass


class SettlementError(AuctionHouseError):
    """Raised when one or more settlement legs failed; the auction stays open for retry."""
    pass
