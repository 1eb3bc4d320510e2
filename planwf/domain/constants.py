from pathlib import Path

# Session storage
DEFAULT_SESSIONS_ROOT = Path(".planwf/sessions")
SESSION_FILENAME = "session.json"
SESSION_TEMP_SUFFIX = ".json.tmp"

# Config
CONFIG_DIRNAME = ".planwf"
CONFIG_FILENAME = "config.yml"

# Project layout (fixed, not configurable)
PLANS_DIR = Path("docs/plans")
TASKS_DIR = Path("docs/tasks")
PLAN_FILENAME_TEMPLATE = "{date}-{topic}-design.md"
TASK_FILENAME_TEMPLATE = "{task}-task.md"

# Design document modules, in canonical order
MANDATORY_MODULES: tuple[str, ...] = (
    "Architecture",
    "Components",
    "Data Flow",
    "Error Handling",
    "Testing",
)

# Soft size band for a proposed section, in words
SECTION_MIN_WORDS = 200
SECTION_MAX_WORDS = 300

# Solution proposal bounds
MIN_ALTERNATIVES = 2
MAX_ALTERNATIVES = 3

# Session bootstrap hook
BOOTSTRAP_SKILL_NAME = "using-x-agent-plugin"
BOOTSTRAP_SKILL_PATH = Path("skills") / BOOTSTRAP_SKILL_NAME / "SKILL.md"
PLUGIN_ROOT_ENV = "PLANWF_PLUGIN_ROOT"
