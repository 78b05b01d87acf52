from .defaults import (
    DEFAULT_CONNECTIVITY_TTL, DEFAULT_MAIN_FILE_TYPES, DEFAULT_MAX_CHARS_PER_FILE,
    DEFAULT_MAX_SELECTED_FILES, DEFAULT_MAX_TOKENS, DEFAULT_MAX_TREE_ENTRIES_PER_LEVEL,
    DEFAULT_MODEL, DEFAULT_TEMPERATURE, FALLBACK_MODELS
)

from pydantic import BaseModel, Field, PositiveInt, RootModel, field_validator
from typing import Dict, Iterator, List, Literal, Optional
from enum import Enum

TaskType = Literal["code", "analysis", "edit", "general"]


class NodeKind(str, Enum):
    FILE = "file"
    DIRECTORY = "directory"


class RepositoryLocator(BaseModel):
    """Parsed `host/owner/name` reference to a remote repository"""
    host: str
    owner: str
    name: str
    url: str
    clone_url: str

    @property
    def namespace(self) -> str:
        return f"{self.owner}/{self.name}"


class RepositoryMetadata(BaseModel):
    description: str = ""
    stars: int = 0
    forks: int = 0


class RemoteRepository(BaseModel):
    """Root model representing the currently loaded repository"""
    owner: str
    name: str
    url: str
    description: str = ""
    stars: int = 0
    forks: int = 0
    cloned: bool = False
    file_count: int = 0
    file_types: Dict[str, int] = Field(default_factory=dict)
    revision: Optional[str] = None

    @property
    def namespace(self) -> str:
        return f"{self.owner}/{self.name}"

    def main_file_types(self, limit: int = DEFAULT_MAIN_FILE_TYPES) -> List[str]:
        ranked = sorted(self.file_types.items(), key=lambda item: item[1], reverse=True)
        return [f"{ext} ({count})" for ext, count in ranked[:limit]]


class CloneProgress(BaseModel):
    phase: str
    percent: float = Field(ge=0, le=100)


class EntryStat(BaseModel):
    kind: NodeKind
    size: int = 0


class FileTreeNode(BaseModel):
    kind: NodeKind
    name: str
    path: str
    children: Optional[List["FileTreeNode"]] = None

    @classmethod
    def directory(cls, name: str, path: str) -> "FileTreeNode":
        return cls(kind=NodeKind.DIRECTORY, name=name, path=path, children=[])

    @classmethod
    def file(cls, name: str, path: str) -> "FileTreeNode":
        return cls(kind=NodeKind.FILE, name=name, path=path)

    @property
    def is_dir(self) -> bool:
        return self.kind == NodeKind.DIRECTORY

    def iter_files(self) -> Iterator["FileTreeNode"]:
        """Yields every file below this node in traversal order"""
        if not self.is_dir:
            yield self
            return

        for child in self.children or []:
            yield from child.iter_files()

    def find(self, path: str) -> Optional["FileTreeNode"]:
        if self.path == path:
            return self
        for child in self.children or []:
            if child.path == path or (child.is_dir and path.startswith(f"{child.path}/")):
                match = child.find(path)
                if match is not None:
                    return match
        return None


FileTreeNode.model_rebuild()


class ContextBudget(BaseModel):
    max_selected_files: PositiveInt = DEFAULT_MAX_SELECTED_FILES
    max_chars_per_file: PositiveInt = DEFAULT_MAX_CHARS_PER_FILE
    max_tree_entries_per_level: PositiveInt = DEFAULT_MAX_TREE_ENTRIES_PER_LEVEL


class Message(BaseModel):
    role: Literal["system", "user", "assistant"]
    content: str


class CompletionRequest(BaseModel):
    system_prompt: str
    messages: List[Message]
    model: str
    stream: bool = False
    temperature: Optional[float] = DEFAULT_TEMPERATURE
    max_tokens: Optional[int] = DEFAULT_MAX_TOKENS

    def with_model(self, model: str) -> "CompletionRequest":
        return self.model_copy(update={"model": model})

    def to_payload(self) -> dict:
        payload = {
            "model": self.model,
            "messages": [
                {"role": "system", "content": self.system_prompt},
                *(message.model_dump() for message in self.messages)
            ]
        }
        if self.stream:
            payload["stream"] = True
        if self.temperature is not None:
            payload["temperature"] = self.temperature
        if self.max_tokens is not None:
            payload["max_tokens"] = self.max_tokens
        return payload


class ModelFallbackChain(RootModel):
    """Ordered, duplicate free model ids tried after the preferred model gives up"""
    root: List[str]

    @field_validator("root", mode="after")
    @classmethod
    def unique_and_not_empty(cls, models: List[str]) -> List[str]:
        unique = list(dict.fromkeys(model for model in models if model))
        if not unique:
            raise ValueError("a fallback chain needs at least one model")
        return unique

    def __iter__(self):
        return iter(self.root)

    def __len__(self) -> int:
        return len(self.root)

    def __contains__(self, model: str) -> bool:
        return model in self.root

    def excluding(self, model: str) -> List[str]:
        return [candidate for candidate in self.root if candidate != model]

    @classmethod
    def from_defaults(
        cls,
        fallback_models: Optional[List[str]] = None,
        default_model: str = DEFAULT_MODEL) -> "ModelFallbackChain":
        """Fixed fallback priority followed by the default model. Task defaults never enter the chain."""
        fallback_models = FALLBACK_MODELS if fallback_models is None else fallback_models
        return cls(root=[*fallback_models, default_model])


class ConnectivityState(str, Enum):
    OK = "ok"
    ERROR = "error"


class ConnectivityStatus(BaseModel):
    state: ConnectivityState
    message: Optional[str] = None
    checked_at: float
    ttl: float = DEFAULT_CONNECTIVITY_TTL

    @property
    def ok(self) -> bool:
        return self.state == ConnectivityState.OK

    def is_stale(self, now: float) -> bool:
        return now - self.checked_at >= self.ttl


class FileModification(BaseModel):
    """A proposed change. Never applied to the repository by the engine."""
    path: str
    original_content: Optional[str] = None
    new_content: str

    @property
    def is_new_file(self) -> bool:
        return self.original_content is None


class AgentResponse(BaseModel):
    explanation: str = ""
    files: List[FileModification] = Field(default_factory=list)
    plan: Optional[str] = None
    raw: str = ""


class GeneratedCode(BaseModel):
    implementation: str = ""
    tests: str = ""
