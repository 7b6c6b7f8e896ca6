"""AI action execution gateway: gating, dispatch and audit recording."""
from .content_render import ContentRenderService
from .errors import ActionNotFoundError, GatewayError, PayloadValidationError, PersistenceError
from .gating import GateDecision, PolicyContext, evaluate_gate
from .orchestrator import Gateway
from .responses import GatewayResponse

__all__ = [
    "Gateway", "ContentRenderService", "GatewayResponse",
    "GateDecision", "PolicyContext", "evaluate_gate",
    "GatewayError", "ActionNotFoundError", "PayloadValidationError", "PersistenceError",
]
