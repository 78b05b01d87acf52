from ..core.models import AgentResponse, FileModification, GeneratedCode

from typing import Dict, List, Optional
import orjson
import re

EXPLANATION_PATTERN = re.compile(
    r"(?:SOLUTION\s+)?EXPLANATION:[ \t]*\n?(.*?)(?=IMPLEMENTATION:|MODIFIED FILES:|\[FILE:|\Z)",
    re.DOTALL
)

# a language tag is only consumed when the fence line ends right after it
FENCE_OPEN = r"```(?:[\w.+#-]*[ \t]*\n)?"

FILE_BLOCK_PATTERN = re.compile(
    r"\[FILE:[ \t]*([^\]\n]+?)[ \t]*\]\s*" + FENCE_OPEN + r"(.*?)```",
    re.DOTALL
)

CODE_BLOCK_PATTERN = re.compile(FENCE_OPEN + r"(.*?)```", re.DOTALL)

IMPLEMENTATION_BLOCK_PATTERN = re.compile(r"IMPLEMENTATION:\s*" + FENCE_OPEN + r"(.*?)```", re.DOTALL)

TESTS_BLOCK_PATTERN = re.compile(r"TESTS:\s*" + FENCE_OPEN + r"(.*?)```", re.DOTALL)

JSON_ARRAY_PATTERN = re.compile(r"\[\s*\"[^\]]*\]", re.DOTALL)

QUOTED_STRING_PATTERN = re.compile(r"\"([^\"\n]+)\"")

BACKTICK_TOKEN_PATTERN = re.compile(r"`([^`\s]+)`")

PATH_LIKE_PATTERN = re.compile(r"^[\w.@-]+(?:/[\w.@-]+)*$")

CLASS_NAME_PATTERN = re.compile(r"class\s+(\w+)")

FUNCTION_NAME_PATTERN = re.compile(r"def\s+(\w+)")


def _clean_body(body: str) -> str:
    return body.lstrip("\r\n").rstrip()


def parse_multi_file(text: str) -> AgentResponse:
    """
    Recovers the explanation and the `[FILE: path]` blocks of a marker formatted answer.

    Tolerant by contract: missing sections simply come back empty. When a path
    appears more than once the last body wins while the first position is kept.
    """
    text = text or ""

    explanation = ""
    match = EXPLANATION_PATTERN.search(text)
    if match:
        explanation = match.group(1).strip()

    files: Dict[str, str] = {}
    for block in FILE_BLOCK_PATTERN.finditer(text):
        path = block.group(1).strip()
        if path:
            files[path] = _clean_body(block.group(2))

    return AgentResponse(
        explanation=explanation,
        files=[FileModification(path=path, new_content=content) for path, content in files.items()],
        raw=text
    )


def _normalize_candidate(path: str) -> str:
    path = path.strip()
    while path.startswith("./"):
        path = path[2:]
    return path.lstrip("/")


def _dedupe(paths: List[str]) -> List[str]:
    cleaned = (_normalize_candidate(path) for path in paths if isinstance(path, str))
    return list(dict.fromkeys(path for path in cleaned if path))


def _first_json_array(text: str) -> Optional[List[str]]:
    for candidate in JSON_ARRAY_PATTERN.finditer(text):
        try:
            value = orjson.loads(candidate.group(0))
        except orjson.JSONDecodeError:
            continue
        if isinstance(value, list):
            return [item for item in value if isinstance(item, str)]
    return None


def extract_file_paths(text: str) -> List[str]:
    """
    Pulls file paths out of a free form model answer.

    Tries, in order, the first JSON array of strings, then every double quoted
    string, then backtick quoted tokens shaped like paths.
    """
    text = text or ""

    paths = _first_json_array(text)
    if paths:
        return _dedupe(paths)

    quoted = QUOTED_STRING_PATTERN.findall(text)
    if quoted:
        return _dedupe(quoted)

    tokens = [
        token for token in BACKTICK_TOKEN_PATTERN.findall(text)
        if PATH_LIKE_PATTERN.match(token) and ("/" in token or "." in token.strip("."))
    ]
    return _dedupe(tokens)


def split_implementation_and_tests(text: str) -> GeneratedCode:
    text = text or ""
    implementation = IMPLEMENTATION_BLOCK_PATTERN.search(text)
    tests = TESTS_BLOCK_PATTERN.search(text)
    return GeneratedCode(
        implementation=implementation.group(1).strip() if implementation else "",
        tests=tests.group(1).strip() if tests else ""
    )


def extract_code(text: str) -> str:
    """Joins every fenced code block, or returns the stripped text when there is none"""
    text = text or ""
    blocks = CODE_BLOCK_PATTERN.findall(text)
    if blocks:
        return "\n\n".join(block.strip() for block in blocks)
    return text.strip()


def suggest_file_name(code: str, extension: str = ".py") -> str:
    for pattern in (CLASS_NAME_PATTERN, FUNCTION_NAME_PATTERN):
        match = pattern.search(code or "")
        if match:
            return f"{match.group(1).lower()}{extension}"
    return f"main{extension}"
