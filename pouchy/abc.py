__all__ = (
	"Backend",
	"Adapter",
	"ReplicationSession",
	
	"Document",
	"Meta",
)

from .core.backend import Backend
from .core.backend import Adapter

from .core.replication import ReplicationSession

from .core.backend import Document
from .core.backend import Meta
