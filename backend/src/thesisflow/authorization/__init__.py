"""Authorization engine: collaborator bindings in, audited decisions out."""

from .service import AuthorizationService

__all__ = ["AuthorizationService"]
