# skills.py
# Skill registry — installed capabilities that feed hints to the advisory
# service, both when classifying and when repairing a failed command.
#
# Each skill is a subdirectory of the skills dir holding either:
#   skill.toml — id / name / description / prompt_hint / install
#   SKILL.md   — markdown with a `---` frontmatter (name, description, ...)

import re
import tomllib
from collections.abc import Iterable
from pathlib import Path

from pydantic import ValidationError

from shell_pilot import display
from shell_pilot.models import Skill

DEFAULT_SKILLS_DIR = "skills"
SKILL_MANIFEST = "skill.toml"
SKILL_MD = "SKILL.md"
INSTALL_SECTION = "Install"

# skill id → keywords in a failed command that make the skill relevant
FIX_KEYWORDS: dict[str, tuple[str, ...]] = {
    "screen_record": ("ffmpeg", "avfoundation"),
    "screenshot": ("screencapture", "scrot", "import"),
}

_ID_UNSAFE = re.compile(r"[^A-Za-z0-9_-]")


# ---------------------------------------------------------------------------
# SKILL.md parsing
# ---------------------------------------------------------------------------


def split_frontmatter(content: str) -> tuple[str, str]:
    """Split ``---``-delimited frontmatter from the markdown body."""
    content = content.lstrip()
    if not content.startswith("---"):
        return "", content
    after = content[3:].lstrip()
    end = after.find("\n---")
    if end < 0:
        return after.strip(), ""
    return after[:end].strip(), after[end + 4:].lstrip()


def extract_section(body: str, title: str) -> str:
    """Text under ``## <title>`` up to the next level-2 heading."""
    lines = body.splitlines()
    for i, line in enumerate(lines):
        if line.strip().startswith(f"## {title}"):
            collected = []
            for rest in lines[i + 1:]:
                if rest.strip().startswith("## "):
                    break
                collected.append(rest)
            return "\n".join(collected).strip()
    return ""


def parse_skill_md(content: str, dir_name: str) -> Skill:
    front, body = split_frontmatter(content)
    fields: dict[str, str] = {}
    for line in front.splitlines():
        key, sep, value = line.partition(":")
        if sep:
            fields[key.strip().lower()] = value.strip()

    name = fields.get("name") or dir_name
    description = fields.get("description", "")
    skill_id = _ID_UNSAFE.sub("_", name) or dir_name
    return Skill(
        id=skill_id,
        name=name,
        description=description,
        prompt_hint=fields.get("prompt_hint") or description,
        install=fields.get("install") or extract_section(body, INSTALL_SECTION),
    )


def _load_one(directory: Path) -> Skill | None:
    manifest = directory / SKILL_MANIFEST
    skill_md = directory / SKILL_MD
    try:
        if manifest.is_file():
            with manifest.open("rb") as fh:
                return Skill.model_validate(tomllib.load(fh))
        if skill_md.is_file():
            return parse_skill_md(skill_md.read_text(encoding="utf-8"), directory.name)
    except (OSError, tomllib.TOMLDecodeError, ValidationError) as exc:
        display.log("SKILLS", f"skipping {directory}: {exc}")
        return None
    return None


def load_skills(directory: str | Path | None = None) -> list[Skill]:
    """Load every skill under `directory`; a missing directory yields no skills."""
    path = Path(directory or DEFAULT_SKILLS_DIR)
    if not path.is_dir():
        return []

    skills = []
    for sub in sorted(path.iterdir()):
        if not sub.is_dir():
            continue
        skill = _load_one(sub)
        if skill is not None:
            skills.append(skill)

    if skills:
        display.log("SKILLS", f"loaded from {path}: {[s.id for s in skills]}")
    return skills


# ---------------------------------------------------------------------------
# SkillRegistry
# ---------------------------------------------------------------------------


class SkillRegistry:
    """Read-only view over the installed skills."""

    def __init__(self, skills: Iterable[Skill] = ()) -> None:
        self._skills: tuple[Skill, ...] = tuple(skills)

    @classmethod
    def from_dir(cls, directory: str | Path | None) -> "SkillRegistry":
        return cls(load_skills(directory))

    @property
    def skills(self) -> tuple[Skill, ...]:
        return self._skills

    def prompt_section(self) -> str:
        """Paragraph appended to the classifier prompt. Empty with no skills."""
        if not self._skills:
            return ""
        lines = ["", "", "You may also use these installed skills and generate matching commands:"]
        lines += [f"- [{s.name}] {s.prompt_hint}" for s in self._skills if s.prompt_hint]
        return "\n".join(lines) + "\n"

    def relevant_hints(self, failed_command: str) -> str:
        """Prompt hints of skills whose keywords appear in `failed_command`."""
        lower = failed_command.lower()
        hints = []
        for skill in self._skills:
            if not skill.prompt_hint:
                continue
            keywords = FIX_KEYWORDS.get(skill.id, ())
            if any(keyword in lower for keyword in keywords):
                hints.append(f"[{skill.name}] {skill.prompt_hint}")
        return "\n\n".join(hints)

    def summary(self) -> str:
        if not self._skills:
            return "No skills are installed."
        lines = [f"{len(self._skills)} skill(s) installed:", ""]
        lines += [f"• {s.name} ({s.id}) — {s.description}" for s in self._skills]
        lines += ["", 'Reply "how to install <skill>" to see installation steps.']
        return "\n".join(lines)

    def install_instructions(self, query: str) -> str | None:
        q = query.strip().lower()
        if not q:
            return None
        for skill in self._skills:
            if skill.id.lower() == q or q in skill.name.lower():
                if not skill.install:
                    return f'"{skill.name}" has no installation notes.'
                return f"{skill.name} installation:\n\n{skill.install}"
        return None
