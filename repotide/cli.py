from repotide import RepoTide
from repotide.agents import RepoAgent
from repotide.core.config import RepoTideConfig
from repotide.core.defaults import REPOTIDE_ASCII_ART
from repotide.core.errors import RepoTideError
from repotide.core.logs import logger, setup_logging
from repotide.core.models import AgentResponse, CloneProgress

from dotenv import load_dotenv
from typing import Optional
import argparse
import asyncio
import sys


def load_config(config_path: Optional[str] = None) -> RepoTideConfig:
    if config_path:
        return RepoTideConfig.from_yaml(config_path)
    return RepoTideConfig.from_env()


def print_progress(progress: CloneProgress):
    print(f"\r[{progress.percent:5.1f}%] {progress.phase:<24}", end="", file=sys.stderr, flush=True)
    if progress.percent >= 100:
        print(file=sys.stderr)


def print_response(response: AgentResponse):
    if response.explanation:
        print(response.explanation)
    for modification in response.files:
        status = "new" if modification.is_new_file else "modified"
        print(f"\n[{status}] {modification.path}")
        print(modification.new_content)


async def run_command(args: argparse.Namespace) -> int:
    config = load_config(args.config)
    tide = RepoTide.from_config(config)

    if args.command != "check":
        await tide.load_repository(args.url, on_progress=print_progress, force=args.force)

    if args.command == "tree":
        print(await tide.render_tree())
        return 0

    agent = RepoAgent.from_config(tide, config)
    try:
        if args.command == "check":
            status = await agent.check_connectivity(force=True)
            print(f"{status.state.value}: {status.message or 'all fallback models reachable'}")
            return 0 if status.ok else 1

        if args.command == "analyze":
            print(await agent.analyze(args.prompt, model=args.model))
        elif args.command == "generate":
            await agent.stream_generate(
                args.prompt,
                on_chunk=lambda chunk: print(chunk, end="", flush=True),
                on_complete=lambda _: print(),
                language=args.language,
                model=args.model
            )
        elif args.command == "search":
            for path in await agent.search(args.description, model=args.model):
                print(path)
        elif args.command == "solve":
            print_response(await agent.solve(args.problem, model=args.model))
        elif args.command == "modify":
            print_response(await agent.autonomous_modify(args.task, model=args.model))
    finally:
        await agent.llm.client.aclose()
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="RepoTide repository assistant CLI")
    parser.add_argument("--config", type=str, default=None, help="Path to a YAML config file (default: environment variables)")
    parser.add_argument("--log-level", type=str, default="WARNING", help="Console log level (default: WARNING)")
    parser.add_argument("--no-log-file", action="store_true", help="Disable the rotated log file")

    subparsers = parser.add_subparsers(dest="command", required=True)

    def repository_command(name: str, help_text: str, *arguments: str) -> argparse.ArgumentParser:
        subparser = subparsers.add_parser(name, help=help_text)
        subparser.add_argument("url", help="Repository URL, e.g. https://github.com/owner/name")
        for argument in arguments:
            subparser.add_argument(argument)
        subparser.add_argument("--force", action="store_true", help="Re-clone even if already present locally")
        subparser.add_argument("--model", type=str, default=None, help="Preferred model id")
        return subparser

    repository_command("tree", "Print the repository file tree")
    repository_command("analyze", "Ask a question about the repository", "prompt")
    generate = repository_command("generate", "Stream generated code grounded in the repository", "prompt")
    generate.add_argument("--language", type=str, default=None, help="Target language")
    repository_command("search", "Find files matching a functionality description", "description")
    repository_command("solve", "Plan and implement a solution to a problem", "problem")
    repository_command("modify", "Autonomously search, plan and modify files for a task", "task")

    subparsers.add_parser("check", help="Check connectivity with the completion provider")
    return parser


def main():
    load_dotenv()
    args = build_parser().parse_args()
    setup_logging(level=args.log_level.upper(), log_to_file=not args.no_log_file)
    print(REPOTIDE_ASCII_ART, file=sys.stderr)

    try:
        sys.exit(asyncio.run(run_command(args)))
    except RepoTideError as e:
        logger.error(str(e))
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(1)


if __name__ == "__main__":
    main()
