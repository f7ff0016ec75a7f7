from shell_pilot.models import Skill
from shell_pilot.skills import SkillRegistry, load_skills, parse_skill_md, split_frontmatter

SKILL_MD = """\
---
name: Screen Shot
description: Capture the screen to /tmp
---

# Screen Shot

## Install

brew install scrot

## Usage

scrot /tmp/shot.png
"""

# ---------------------------------------------------------------------------
# Loading
# ---------------------------------------------------------------------------

def test_split_frontmatter_without_front():
    assert split_frontmatter("# Title\nbody") == ("", "# Title\nbody")

def test_parse_skill_md_defaults():
    skill = parse_skill_md(SKILL_MD, "shot")
    assert skill.id == "Screen_Shot"
    assert skill.name == "Screen Shot"
    assert skill.prompt_hint == "Capture the screen to /tmp"
    assert skill.install == "brew install scrot"

def test_parse_skill_md_without_name_uses_dir():
    skill = parse_skill_md("---\ndescription: x\n---\n", "my-skill")
    assert skill.id == "my-skill"
    assert skill.name == "my-skill"

def test_load_skills_reads_both_manifest_formats(tmp_path):
    (tmp_path / "record").mkdir()
    (tmp_path / "record" / "skill.toml").write_text(
        'id = "screen_record"\nname = "Screen Record"\nprompt_hint = "use ffmpeg avfoundation"\n'
    )
    (tmp_path / "shot").mkdir()
    (tmp_path / "shot" / "SKILL.md").write_text(SKILL_MD)
    (tmp_path / "empty").mkdir()
    (tmp_path / "broken").mkdir()
    (tmp_path / "broken" / "skill.toml").write_text("id = ")
    (tmp_path / "stray.txt").write_text("ignored")

    skills = load_skills(tmp_path)

    assert sorted(s.id for s in skills) == ["Screen_Shot", "screen_record"]

def test_load_skills_missing_dir(tmp_path):
    assert load_skills(tmp_path / "nope") == []

# ---------------------------------------------------------------------------
# Registry
# ---------------------------------------------------------------------------

REGISTRY = SkillRegistry([
    Skill(id="screen_record", name="Screen Record", description="record", prompt_hint="ffmpeg hint", install="brew install ffmpeg"),
    Skill(id="screenshot", name="Screenshot", description="shoot", prompt_hint="scrot hint"),
    Skill(id="weather", name="Weather", description="forecast", prompt_hint="curl wttr.in"),
])

def test_relevant_hints_by_keyword():
    assert REGISTRY.relevant_hints("FFMPEG -f avfoundation") == "[Screen Record] ffmpeg hint"
    assert REGISTRY.relevant_hints("import -window root /tmp/a.png") == "[Screenshot] scrot hint"
    assert REGISTRY.relevant_hints("curl wttr.in") == ""

def test_relevant_hints_joins_multiple_matches():
    hints = REGISTRY.relevant_hints("ffmpeg && scrot")
    assert hints == "[Screen Record] ffmpeg hint\n\n[Screenshot] scrot hint"

def test_prompt_section_lists_hints():
    section = REGISTRY.prompt_section()
    assert "- [Weather] curl wttr.in" in section
    assert SkillRegistry().prompt_section() == ""

def test_summary_and_install_instructions():
    assert "3 skill(s) installed" in REGISTRY.summary()
    assert REGISTRY.install_instructions("screen_record").endswith("brew install ffmpeg")
    assert "no installation notes" in REGISTRY.install_instructions("screenshot")
    assert REGISTRY.install_instructions("unknown") is None
    assert REGISTRY.install_instructions("  ") is None
