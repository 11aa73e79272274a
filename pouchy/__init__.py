"""
pouchy is a simple, opinionated interface to CouchDB-like document databases.
It hides the inconsistent result shapes of the underlying database behind one
canonical document shape (``id`` and ``revision`` instead of ``_id``/``_rev``
and friends), makes index creation idempotent and takes care not to destroy a
database while live replication is still running against it.
"""

__version__ = "0.1.0"
__author__ = "pouchy contributors"
__email__ = "pouchy@users.noreply.github.com"
__all__ = (
	"Store",
	"ReplicationSession",
	"NullBackend", "MemoryBackend",
	"Error", "InvalidArgumentError", "BackendError", "NotFoundError", "ConflictError",
	
	"abc", "util"
)


# import core.store
from .core.store import Store

# import core.replication
from .core.replication import ReplicationSession

# import core.backend
from .core.backend import NullBackend
from .core.backend import MemoryBackend

# import core.errors
from .core.errors import Error
from .core.errors import InvalidArgumentError
from .core.errors import BackendError
from .core.errors import NotFoundError
from .core.errors import ConflictError


### Exposed submodules ###
from . import abc
from . import util
