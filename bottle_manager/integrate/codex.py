#!/usr/bin/env python3
"""
Bottle Codex Integration
Writes the Cloud Atlas AI skills (bottle, ba, wm, sg) into ~/.codex/skills/
"""

import shutil
from pathlib import Path
from typing import Dict, Optional

from bottle_manager.errors import InstallError
from bottle_manager.integrate.base import Integration, Platform


def create_bottle_skill() -> str:
    return """---
name: bottle
description: Manage the curated agent tool stack with the bottle CLI
---

# bottle

Use `bottle` to inspect and change the installed tool bottle.

- `bottle status` shows the active bottle, its tools and whether they are present.
- `bottle status --check-updates` compares against the latest manifest.
- `bottle update` moves to the latest snapshot of the active bottle.
- `bottle switch <bottle>` reconciles tools to another bottle.
- `bottle agents-md` prints the AGENTS.md snippet for the active bottle.

Always run `bottle update --dry-run` and show the plan to the user before updating.
"""


def create_ba_skill() -> str:
    return """---
name: ba
description: Track tasks for this session with ba
---

# ba

`ba` is a lightweight task tracker for agents.

- `ba list` shows open tasks.
- `ba claim <id>` takes a task before working on it.
- `ba finish <id>` marks it done.

Claim before you start and finish before you stop.
"""


def create_wm_skill() -> str:
    return """---
name: wm
description: Working memory that carries context between sessions
---

# wm

`wm` stores tacit knowledge about the project.

- `wm compile` prints the context relevant to the current task.
- `wm distill` extracts learnings from the current session.

Compile at the start of a task and distill at the end.
"""


def create_sg_skill() -> str:
    return """---
name: sg
description: Superego metacognitive review
---

# sg

`sg` (superego) reviews the agent's plan before it acts.

- `sg review` evaluates the pending change.

Run a review before large or irreversible changes.
"""


def create_agents_snippet() -> str:
    return """## Agent tooling

This machine uses bottle for its agent tool stack. See the `bottle`, `ba`,
`wm` and `sg` skills for usage.
"""


SKILLS = {
    'bottle': create_bottle_skill,
    'ba': create_ba_skill,
    'wm': create_wm_skill,
    'sg': create_sg_skill,
}


class CodexIntegration(Integration):
    platform = Platform.CODEX
    detection_hint = '~/.codex/'
    install_action = "Create ~/.codex/skills/{bottle,ba,wm,sg}/SKILL.md"
    remove_action = "Remove ~/.codex/skills/{bottle,ba,wm,sg}/"

    @property
    def skills_dir(self) -> Path:
        return self.home / '.codex' / 'skills'

    def is_detected(self) -> bool:
        return (self.home / '.codex').exists()

    def is_installed(self) -> bool:
        return (self.skills_dir / 'bottle').exists()

    def _write(self, path: Path, content: str) -> None:
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            path.write_text(content, encoding='utf-8')
        except OSError as e:
            raise InstallError("codex integration", f"Failed to write {path}: {e}") from e

    def install(self, opencode_plugins: Optional[Dict[str, str]] = None) -> None:
        for name, create in SKILLS.items():
            self._write(self.skills_dir / name / 'SKILL.md', create())
        self._write(self.skills_dir / 'bottle' / 'AGENTS.md.snippet', create_agents_snippet())

    def remove(self) -> None:
        for name in SKILLS:
            skill_path = self.skills_dir / name
            if not skill_path.exists():
                continue
            try:
                shutil.rmtree(skill_path)
            except OSError as e:
                raise InstallError("codex integration", f"Failed to remove {name} skill: {e}") from e
