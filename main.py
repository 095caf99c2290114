import argparse
import asyncio
import sys

from dotenv import load_dotenv

# Load environment variables first
load_dotenv()

from config.config import Config
from models.errors import InvalidInputError
from models.search_models import SearchOutcome
from orchestrator.swarm_controller import SwarmController
from tools.web.factory import create_research_tools, create_swarm_controller
from tools.web.research_tools import FocusMode


def print_status(status: str) -> None:
    sys.stdout.write(f"\r\033[93m{status:<60}\033[0m")
    sys.stdout.flush()


def clear_status() -> None:
    sys.stdout.write("\r" + " " * 60 + "\r")
    sys.stdout.flush()


def print_outcome(outcome: SearchOutcome) -> None:
    """
    Print the answer, then its sources, perspectives and follow-up questions.
    """
    print(f"\n{outcome.article.content}\n")

    if outcome.bundle.results:
        print("=== Sources ===")
        for index, result in enumerate(outcome.bundle.results, start=1):
            print(f"[{index}] {result.title}\n    {result.url}")
        print()

    if outcome.perspectives:
        print("=== Perspectives ===")
        for perspective in outcome.perspectives:
            print(f"- {perspective.title}: {perspective.description}")
        print()

    if outcome.article.follow_up_questions:
        print("=== Follow-up questions ===")
        for question in outcome.article.follow_up_questions:
            print(f"- {question}")
        print()


async def search(controller: SwarmController, query: str, image_refs: list[str], is_pro: bool) -> None:
    try:
        outcome = await controller.process_query(
            query, image_refs, is_pro=is_pro, on_status_update=print_status
        )
    except InvalidInputError as e:
        clear_status()
        print(f"\nError: {e}\n")
        return
    clear_status()
    print_outcome(outcome)


async def research(query: str, mode: str) -> None:
    tools = create_research_tools()
    responses = await tools.perform_focused_search(query, mode)
    for response in responses:
        print(f"\n=== {response.query} ({response.source}) ===")
        for result in response.results:
            print(f"- {result.title}\n  {result.url}")
    print()


async def interactive(controller: SwarmController, is_pro: bool) -> None:
    print("\n=== Lumen Search ===")
    print("Type a question, 'help' for commands, or 'exit' to quit\n")

    while True:
        try:
            user_input = input("Search: ").strip()
        except (KeyboardInterrupt, EOFError):
            print("\nExiting...")
            break

        if not user_input:
            continue

        if user_input.lower() in ("exit", "quit"):
            print("\nGoodbye!")
            break

        if user_input.lower() == "help":
            modes = ", ".join(m.value for m in FocusMode)
            print("\n=== Available Commands ===")
            print("help                   - Show this help message")
            print("pro                    - Toggle pro search (perspectives)")
            print("image <url> [question] - Reverse image search")
            print(f"research <mode> <q>    - Focused research ({modes})")
            print("exit/quit              - Exit the program\n")
            continue

        if user_input.lower() == "pro":
            is_pro = not is_pro
            print(f"Pro search {'enabled' if is_pro else 'disabled'}\n")
            continue

        command, _, rest = user_input.partition(" ")
        if command.lower() == "image" and rest.strip():
            image_url, _, question = rest.strip().partition(" ")
            await search(controller, question, [image_url], is_pro)
        elif command.lower() == "research" and rest.strip():
            mode, _, query = rest.strip().partition(" ")
            if query:
                await research(query, mode)
            else:
                await research(mode, FocusMode.WEB)
        else:
            await search(controller, user_input, [], is_pro)


def main():
    parser = argparse.ArgumentParser(description="Lumen Search CLI")
    parser.add_argument("--pro", action="store_true", help="Include perspectives (pro search)")
    parser.add_argument(
        "--image", action="append", default=[], help="Public image URL for reverse image search"
    )
    parser.add_argument("query", nargs="*", help="Run a single search and exit")
    args = parser.parse_args()

    config = Config.from_env()
    if not config.validate():
        print(f"Warning: missing configuration: {', '.join(config.missing_keys())}")

    controller = create_swarm_controller(config)
    if args.query or args.image:
        asyncio.run(search(controller, " ".join(args.query), args.image, args.pro))
    else:
        asyncio.run(interactive(controller, args.pro))


if __name__ == "__main__":
    main()
