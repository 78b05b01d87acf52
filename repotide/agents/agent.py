from repotide import RepoTide
from ..core.defaults import (
    AUTONOMOUS_MAX_FILES, BREAKLINE, CREATE_REFERENCE_FILES, GENERATE_CONTEXT_FILES,
    IMPLEMENTATION_CONTEXT_CHARS, WORKFLOW_DEFAULT_MODELS
)
from ..core.errors import InputValidationError, NotFoundError, RepositoryIOError
from ..core.models import AgentResponse, ConnectivityStatus, FileModification, GeneratedCode, ModelFallbackChain
from ..core.common import file_extension, normalize_path
from ..core.config import RepoTideConfig
from ..core.logs import logger
from ..context import collect_file_paths
from ..llm import ChunkCallback, CompleteCallback, CompletionClient, ConnectivityMonitor, ResilientCompletionClient
from .parser import extract_code, extract_file_paths, parse_multi_file, split_implementation_and_tests
from .prompts import (
    ANALYZE_PROMPT, AUTONOMOUS_IMPLEMENT_PROMPT, AUTONOMOUS_PLAN_PROMPT, CREATE_FILE_PROMPT,
    EDIT_FILE_PROMPT, FUNCTIONALITY_LABEL, GENERATE_PROMPT, GENERATE_WITH_TESTS_PROMPT,
    LANGUAGE_FROM_CONTEXT_INSTRUCTION, LANGUAGE_INSTRUCTION, NO_REFERENCES_HEADER,
    REFERENCE_FILE_TEMPLATE, REFERENCES_FOUND_HEADER, REPOSITORY_CONTEXT_SECTION,
    REPOSITORY_SYSTEM_CONTEXT, REPOTIDE_SYSTEM_PROMPT, SEARCH_FILES_PROMPT, SOLVE_IMPLEMENT_PROMPT,
    SOLVE_PLAN_PROMPT, TASK_LABEL
)

from typing import Dict, List, Optional
import posixpath


class RepoAgent:
    """
    Coordinates the repository engine and the completion layer into the
    user facing workflows. Proposes changes only: nothing is ever written
    back to the repository.
    """

    def __init__(
        self,
        tide: RepoTide,
        llm: ResilientCompletionClient,
        monitor: Optional[ConnectivityMonitor] = None,
        workflow_models: Optional[Dict[str, str]] = None):

        self.tide = tide
        self.llm = llm
        self.monitor = monitor or llm.monitor or ConnectivityMonitor(llm.client)
        self.workflow_models = {**WORKFLOW_DEFAULT_MODELS, **(workflow_models or {})}

    @classmethod
    def from_config(cls, tide: RepoTide, config: RepoTideConfig) -> "RepoAgent":
        client = CompletionClient(api_key=config.api_key, base_url=config.base_url)
        monitor = ConnectivityMonitor(
            client,
            required_models=config.required_models,
            fallback_models=config.fallback_models,
            ttl=config.connectivity_ttl,
            task_defaults=config.task_models
        )
        llm = ResilientCompletionClient(
            client,
            fallback_chain=ModelFallbackChain.from_defaults(
                fallback_models=config.fallback_models,
                default_model=config.default_model
            ),
            max_retries=config.retry.max_retries,
            retry_delay=config.retry.retry_delay,
            monitor=monitor
        )
        return cls(tide, llm, monitor=monitor, workflow_models=config.workflow_models)

    # ------------------------------------------------------------------
    # helpers
    # ------------------------------------------------------------------

    def _system_prompt(self, include_repository: bool = False) -> str:
        prompt = REPOTIDE_SYSTEM_PROMPT
        repository = self.tide.repository
        if include_repository and repository is not None:
            prompt += REPOSITORY_SYSTEM_CONTEXT.format(
                name=repository.name,
                owner=repository.owner,
                description=repository.description or "No description provided",
                file_count=repository.file_count,
                file_types=", ".join(repository.main_file_types()) or "none"
            )
        return prompt

    async def _resolve_model(self, workflow: str, model: Optional[str] = None) -> str:
        """
        Refreshes the connectivity status before a workflow talks to the provider,
        so an unreachable provider fails fast with `ConnectivityError`.
        """
        await self.monitor.check()
        return model or self.workflow_models[workflow]

    async def _ask(self, workflow: str, prompt: str, model: Optional[str] = None, include_repository: bool = True) -> str:
        model = await self._resolve_model(workflow, model)
        logger.info(f"Running {workflow} with {model}")
        return await self.llm.complete(self._system_prompt(include_repository), prompt, model=model)

    @staticmethod
    def _language_instruction(language: Optional[str]) -> str:
        return LANGUAGE_INSTRUCTION.format(language=language) if language else LANGUAGE_FROM_CONTEXT_INSTRUCTION

    async def _read_files(self, paths: List[str]) -> Dict[str, str]:
        """Reads what it can, skipping missing or unreadable files"""
        contents = {}
        for path in paths:
            try:
                contents[normalize_path(path)] = await self.tide.get_file(path)
            except (NotFoundError, RepositoryIOError, InputValidationError) as e:
                logger.warning(f"Failed to read file {path}: {e}")
        return contents

    @staticmethod
    def _format_files(contents: Dict[str, str]) -> str:
        return BREAKLINE.join(
            REFERENCE_FILE_TEMPLATE.format(path=path, content=content)
            for path, content in contents.items()
        )

    async def _current_content(self, path: str) -> Optional[str]:
        try:
            return await self.tide.get_file(path)
        except NotFoundError:
            return None
        except (RepositoryIOError, InputValidationError) as e:
            logger.warning(f"Could not load current content of {path}: {e}")
            return None

    async def _attach_originals(self, response: AgentResponse) -> AgentResponse:
        for modification in response.files:
            modification.original_content = await self._current_content(modification.path)
        return response

    # ------------------------------------------------------------------
    # workflows
    # ------------------------------------------------------------------

    async def analyze(self, prompt: str, paths: Optional[List[str]] = None, model: Optional[str] = None) -> str:
        self.tide.require_repository()
        context = await self.tide.build_context(paths)
        return await self._ask("analyze", ANALYZE_PROMPT.format(prompt=prompt, context=context), model)

    async def _generate_prompt(self, prompt: str, language: Optional[str]) -> str:
        context_section = ""
        if self.tide.repository is not None:
            paths = (await self.tide.select_files())[:GENERATE_CONTEXT_FILES]
            context = await self.tide.build_context(paths)
            context_section = REPOSITORY_CONTEXT_SECTION.format(context=context)

        return GENERATE_PROMPT.format(
            prompt=prompt,
            context_section=context_section,
            language_instruction=self._language_instruction(language)
        )

    async def generate(self, prompt: str, language: Optional[str] = None, model: Optional[str] = None) -> str:
        """Code generation, grounded in the loaded repository when there is one"""
        return await self._ask("generate", await self._generate_prompt(prompt, language), model)

    async def stream_generate(
        self,
        prompt: str,
        on_chunk: Optional[ChunkCallback] = None,
        on_complete: Optional[CompleteCallback] = None,
        language: Optional[str] = None,
        model: Optional[str] = None) -> str:

        user_prompt = await self._generate_prompt(prompt, language)
        model = await self._resolve_model("generate", model)
        logger.info(f"Streaming generate with {model}")
        return await self.llm.stream(
            self._system_prompt(True),
            user_prompt,
            model=model,
            on_chunk=on_chunk,
            on_complete=on_complete
        )

    async def edit(self, path: str, instruction: str, model: Optional[str] = None) -> FileModification:
        """
        Raises:
            NotFoundError: `path` does not exist, there is nothing to edit.
        """
        self.tide.require_repository()
        path = normalize_path(path)
        content = await self.tide.get_file(path)

        response = await self._ask(
            "edit",
            EDIT_FILE_PROMPT.format(path=path, instruction=instruction, content=content),
            model,
            include_repository=False
        )
        return FileModification(path=path, original_content=content, new_content=extract_code(response))

    async def create(self, directory: str, file_name: str, description: str, model: Optional[str] = None) -> FileModification:
        repository = self.tide.require_repository()
        path = normalize_path(posixpath.join(normalize_path(directory), file_name))

        extension = file_extension(file_name)
        references = []
        if extension:
            references = [
                candidate for candidate in collect_file_paths(await self.tide.get_tree())
                if file_extension(candidate) == extension
            ][:CREATE_REFERENCE_FILES]
        contents = await self._read_files(references)

        response = await self._ask(
            "create",
            CREATE_FILE_PROMPT.format(
                path=path,
                description=description,
                owner=repository.owner,
                name=repository.name,
                references_header=REFERENCES_FOUND_HEADER if contents else NO_REFERENCES_HEADER,
                references=self._format_files(contents)
            ),
            model,
            include_repository=False
        )
        return FileModification(
            path=path,
            original_content=await self._current_content(path),
            new_content=extract_code(response)
        )

    async def solve(self, problem: str, model: Optional[str] = None) -> AgentResponse:
        """Plans a solution over the full repository context, then implements it as file blocks"""
        self.tide.require_repository()
        context = await self.tide.build_context()

        plan = await self._ask("solve", SOLVE_PLAN_PROMPT.format(problem=problem, context=context), model)
        implementation = await self._ask(
            "solve",
            SOLVE_IMPLEMENT_PROMPT.format(
                problem=problem,
                plan=plan,
                context=context[:IMPLEMENTATION_CONTEXT_CHARS]
            ),
            model
        )

        response = parse_multi_file(implementation)
        response.plan = plan
        logger.info(f"Solution proposes changes to {len(response.files)} files")
        return await self._attach_originals(response)

    async def _search_paths(self, label: str, query: str, model: Optional[str], workflow: str) -> List[str]:
        tree = await self.tide.render_tree()
        response = await self._ask(workflow, SEARCH_FILES_PROMPT.format(label=label, query=query, tree=tree), model)
        return extract_file_paths(response)

    async def autonomous_modify(self, task: str, model: Optional[str] = None) -> AgentResponse:
        """
        Multi step modification: find the relevant files from the tree alone,
        read at most a handful of them, plan, then implement.
        """
        self.tide.require_repository()

        paths = (await self._search_paths(TASK_LABEL, task, model, "autonomous_modify"))[:AUTONOMOUS_MAX_FILES]
        logger.info(f"Relevant files for task: {paths}")
        files = self._format_files(await self._read_files(paths))

        plan = await self._ask("autonomous_modify", AUTONOMOUS_PLAN_PROMPT.format(task=task, files=files), model)
        implementation = await self._ask(
            "autonomous_modify",
            AUTONOMOUS_IMPLEMENT_PROMPT.format(task=task, plan=plan, files=files),
            model
        )

        response = parse_multi_file(implementation)
        response.plan = plan
        return await self._attach_originals(response)

    async def search(self, description: str, model: Optional[str] = None) -> List[str]:
        self.tide.require_repository()
        return await self._search_paths(FUNCTIONALITY_LABEL, description, model, "search")

    async def generate_with_tests(
        self,
        specification: str,
        language: Optional[str] = None,
        model: Optional[str] = None) -> GeneratedCode:

        self.tide.require_repository()
        context = await self.tide.build_context()
        response = await self._ask(
            "generate_with_tests",
            GENERATE_WITH_TESTS_PROMPT.format(
                specification=specification,
                context=context,
                language_instruction=self._language_instruction(language)
            ),
            model
        )
        return split_implementation_and_tests(response)

    async def check_connectivity(self, force: bool = False) -> ConnectivityStatus:
        return await self.monitor.check(force=force)
