"""Skill progression capability.

The skill tree itself lives in the host's character sheet. The flow only
asks it one question, "what is the next unlocked node on the way to
`target_key` at `target_level`?", through this protocol:

    def next_step_toward(self, character, target_key, target_level): ...

Return values:
    SkillStep(node_name, node_level)  grant this node
    True                              no node to grant (already there / dead end)
    None                              no step could be computed

In both of the last two cases the change's `fallback` is applied instead.

The capability is optional; when it is absent every skill change falls
back to its `fallback` change.
"""

from __future__ import annotations

from typing import Any, Protocol

from pydantic import BaseModel


class SkillStep(BaseModel):
    node_name: str
    node_level: int = 0


class SkillProgression(Protocol):
    def next_step_toward(
        self, character: Any, target_key: str, target_level: int
    ) -> SkillStep | bool | None: ...
