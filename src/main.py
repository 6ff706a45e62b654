"""CLI entry point for the Docs Agent.

A terminal chat for testing and development. Tool calls that need approval
are shown one at a time with a y/n prompt. For production, use the FastAPI
server (src/server.py).

Usage:
    uv run python -m src.main            # normal mode (quiet)
    uv run python -m src.main --debug    # debug mode (shows API calls)
"""

from __future__ import annotations

import argparse
import asyncio
import json
import logging
import uuid

from dotenv import load_dotenv

from src.agent import TurnResult, create_docs_agent, resume_turn, run_turn
from src.services.context7_client import Context7Client
from src.services.session_runtime import SessionStore

logger = logging.getLogger(__name__)


def _configure_logging(debug: bool = False) -> None:
    """Set up logging: WARNING by default, DEBUG when --debug is passed."""
    root_level = logging.DEBUG if debug else logging.WARNING
    logging.basicConfig(
        level=root_level,
        format="%(asctime)s %(levelname)-8s %(name)s - %(message)s",
    )

    if not debug:
        logging.getLogger("httpx").setLevel(logging.WARNING)
        logging.getLogger("httpcore").setLevel(logging.WARNING)

    logging.getLogger("src").setLevel(logging.DEBUG if debug else logging.INFO)


async def _ask(prompt: str) -> str:
    return (await asyncio.to_thread(input, prompt)).strip()


async def _collect_decisions(result: TurnResult) -> dict[str, bool]:
    decisions: dict[str, bool] = {}
    for call in result.pending_approvals:
        args = json.dumps(call["arguments"], ensure_ascii=False)
        answer = await _ask(f"  Allow {call['tool_name']}({args})? [y/N] ")
        decisions[call["tool_call_id"]] = answer.lower() in ("y", "yes")
    return decisions


async def _chat_loop() -> None:
    async with Context7Client() as docs_client:
        agent = create_docs_agent(SessionStore(), docs_client)
        session_id = str(uuid.uuid4())
        logger.info("Started new session: %s", session_id)

        while True:
            try:
                user_input = await _ask("You: ")
            except (KeyboardInterrupt, EOFError):
                print("\n\nGoodbye!")
                break

            if not user_input:
                continue

            if user_input.lower() in ("exit", "quit", "q"):
                print("\nGoodbye!")
                break

            if user_input.lower() == "new":
                session_id = str(uuid.uuid4())
                print(f"\n>> New session started: {session_id[:8]}...\n")
                continue

            try:
                result = await run_turn(agent, session_id, user_input)
                while result.awaiting_approval:
                    if result.reply:
                        print(f"\nAgent: {result.reply}")
                    decisions = await _collect_decisions(result)
                    result = await resume_turn(agent, session_id, decisions)

                print(f"\nAgent: {result.reply or '(no response)'}\n")

            except (KeyboardInterrupt, EOFError):
                print("\n\nGoodbye!")
                break
            except Exception as e:
                logger.exception("Error processing message")
                print(f"\nAgent: Sorry, something went wrong: {e}")
                print("       Please try again or type 'new' to start a fresh session.\n")


def main():
    """Run the interactive CLI chat loop."""
    parser = argparse.ArgumentParser(description="Docs Agent CLI")
    parser.add_argument(
        "--debug", action="store_true",
        help="Show all log messages including HTTP requests",
    )
    args = parser.parse_args()

    load_dotenv()
    _configure_logging(debug=args.debug)

    print("\n" + "=" * 60)
    print("  Docs Agent - CLI Chat")
    print("=" * 60)
    print("  Type your message and press Enter.")
    print("  Commands: 'quit' to exit, 'new' for a new session.")
    print("=" * 60 + "\n")

    asyncio.run(_chat_loop())


if __name__ == "__main__":
    main()
