from algopeeps.council.backend.base import AgentBackend
from algopeeps.council.backend.opencode import OpencodeBackend

__all__ = ["AgentBackend", "OpencodeBackend"]
