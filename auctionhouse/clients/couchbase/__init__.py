from .config import (
    USERNAME,
    PASSWORD,
    DEFAULT_BUCKET_NAME,
    HOST,
    PROTOCOL,
    auth,
    get_cluster,
    check_connection,
)
from .keyspace import (
    Keyspace,
    get_keyspace,
)
from .base_model import (
    BaseModelCouchbase,
    BaseCouchbaseEntityData,
    UtcDatetime,
    DataT,
    T,
)
