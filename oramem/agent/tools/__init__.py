"""Agent-facing tools backed by the Oracle stores."""

from oramem.agent.tools.memory import build_memory_toolset

__all__ = ["build_memory_toolset"]
