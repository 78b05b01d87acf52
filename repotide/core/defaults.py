from pathlib import Path
import os

INSTALLATION_DIR = Path(os.path.abspath(os.path.dirname(__file__))).parent

DEFAULT_STORAGE_PATH = Path(os.getenv("REPOTIDE_STORAGE_PATH", Path.home() / ".repotide"))
DEFAULT_REPOSITORIES_DIR = "repositories"
DEFAULT_LOGS_DIR = "logs"

DEFAULT_ENCODING = "utf8"

BREAKLINE = "\n"

# Language extensions mapping
LANGUAGE_EXTENSIONS = {
    'python': ['.py'],
    'javascript': ['.js', '.jsx', '.mjs', '.cjs'],
    'typescript': ['.ts', '.tsx'],
    'java': ['.java'],
    'c': ['.c', '.h'],
    'cpp': ['.cpp', '.hpp', '.cc', '.hh', '.cxx', '.hxx'],
    'ruby': ['.rb'],
    'go': ['.go'],
    'rust': ['.rs'],
    'swift': ['.swift'],
    'php': ['.php'],
    'csharp': ['.cs'],
    'kotlin': ['.kt', '.kts'],
    'scala': ['.scala'],
    # Web and templates
    'html': ['.html', '.htm', '.xhtml', '.html5'],
    'css': ['.css', '.scss', '.sass', '.less', '.styl'],
    'yaml': ['.yaml', '.yml'],
    'json': ['.json', '.json5', '.jsonl', '.jsonc'],
    'markdown': ['.md', '.markdown', '.mdown', '.mkd'],
    # Configuration files
    'config': ['.ini', '.cfg', '.conf', '.properties', '.toml'],
    # Documentation
    'documentation': ['.txt', '.text', '.rst', '.tex', '.bib']
}

# Only these count towards the dominant source language of a repository
SOURCE_LANGUAGES = [
    'python', 'javascript', 'typescript', 'java', 'c', 'cpp', 'ruby',
    'go', 'rust', 'swift', 'php', 'csharp', 'kotlin', 'scala'
]

SOURCE_EXTENSIONS = {
    extension
    for language in SOURCE_LANGUAGES
    for extension in LANGUAGE_EXTENSIONS[language]
}

VCS_DIRECTORIES = {".git", ".hg", ".svn"}

NO_EXTENSION = "no-extension"

# Canonical file names, most relevant first
CANONICAL_FILE_PATTERNS = [
    r"readme(\.(md|rst|txt))?",
    r"requirements\.txt",
    r"pyproject\.toml",
    r"setup\.py",
    r"package\.json",
    r"cargo\.toml",
    r"go\.mod",
    r"main\.(py|js|ts|go|rs|java)",
    r"index\.(py|js|ts)",
    r"app\.(py|js|ts)"
]

# Context budget
DEFAULT_MAX_SELECTED_FILES = 10
DEFAULT_MAX_CHARS_PER_FILE = 1000
DEFAULT_MAX_TREE_ENTRIES_PER_LEVEL = 10
DEFAULT_MAIN_FILE_TYPES = 5
TRUNCATION_MARKER = "... [truncated]"

# Completion endpoint
DEFAULT_BASE_URL = "https://openrouter.ai/api/v1"
DEFAULT_HTTP_REFERER = "https://github.com/repotide/repotide"
DEFAULT_APP_TITLE = "RepoTide"
DEFAULT_TEMPERATURE = 0.7
DEFAULT_MAX_TOKENS = 4000
STREAM_DONE_SENTINEL = "[DONE]"

# Host metadata API
GITHUB_HOST = "github.com"
GITHUB_API_URL = "https://api.github.com"

# Resilience
DEFAULT_MAX_RETRIES = 2
DEFAULT_RETRY_DELAY = 1.0
DEFAULT_CONNECTIVITY_TTL = 60.0

# Models
DEFAULT_MODEL = "google/gemini-pro"

REQUIRED_MODELS = [
    "anthropic/claude-instant-1",
    "anthropic/claude-3-opus",
    "anthropic/claude-3-sonnet",
    "meta-llama/llama-2-13b-chat",
    "google/palm-2-chat-bison",
    "google/gemini-pro",
    "mistralai/mistral-7b-instruct",
    "mistralai/mixtral-8x7b-instruct"
]

FALLBACK_MODELS = [
    "google/gemini-pro",
    "anthropic/claude-instant-1",
    "mistralai/mistral-7b-instruct"
]

TASK_DEFAULT_MODELS = {
    "code": "google/gemini-pro",
    "analysis": "mistralai/mixtral-8x7b-instruct",
    "edit": "anthropic/claude-instant-1",
    "general": "mistralai/mistral-7b-instruct"
}

WORKFLOW_DEFAULT_MODELS = {
    "analyze": "mistralai/mixtral-8x7b-instruct",
    "generate": "anthropic/claude-3-opus",
    "edit": "anthropic/claude-3-opus",
    "create": "anthropic/claude-3-opus",
    "solve": "anthropic/claude-3-opus",
    "autonomous_modify": "anthropic/claude-3-opus",
    "search": "anthropic/claude-3-opus",
    "generate_with_tests": "anthropic/claude-3-opus"
}

# Orchestrator limits
GENERATE_CONTEXT_FILES = 5
CREATE_REFERENCE_FILES = 3
AUTONOMOUS_MAX_FILES = 5
IMPLEMENTATION_CONTEXT_CHARS = 3000

REPOTIDE_ASCII_ART = """
 ____                  _____ _     _
|  _ \\ ___ _ __   ___ |_   _(_) __| | ___
| |_) / _ \\ '_ \\ / _ \\  | | | |/ _` |/ _ \\
|  _ <  __/ |_) | (_) | | | | | (_| |  __/
|_| \\_\\___| .__/ \\___/  |_| |_|\\__,_|\\___|
          |_|
"""
