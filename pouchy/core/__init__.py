"""
pouchy.core holds the document store and everything it is built from: the
result normalizer, the backend boundary, the replication session boundary
and the error taxonomy.
"""

__version__ = '0.1.0'
__author__ = 'pouchy contributors'
__email__ = 'pouchy@users.noreply.github.com'

# import store
from .store import Store

# import backend
from .backend import Backend
from .backend import NullBackend
from .backend import MemoryBackend
from .backend import Adapter as BackendAdapter

# import replication
from .replication import ReplicationSession

# import errors
from .errors import Error
from .errors import InvalidArgumentError
from .errors import BackendError
from .errors import NotFoundError
from .errors import ConflictError
