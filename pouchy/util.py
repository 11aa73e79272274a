__all__ = (
	"awaitable_to_context_manager",
	"dual_api",
	"DualResult",
	
	"DatabaseInfo",
	
	"normalize",
	"to_backend",
)

from .core.util.decorator import awaitable_to_context_manager
from .core.util.decorator import dual_api
from .core.util.decorator import DualResult

from .core.util.metadata import DatabaseInfo

from .core.normalize import normalize
from .core.normalize import to_backend
