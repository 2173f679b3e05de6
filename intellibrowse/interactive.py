#!/usr/bin/env python3
"""
IntelliBrowse Interactive CLI

A command-line interface for driving the browsing agent, streaming its
thoughts, tool calls and observations to the terminal.
"""

import argparse
import asyncio
import json
import logging
import sys
from typing import Optional

from .agent.events import StreamEvent
from .config import config
from .errors import AgentError
from .service import AgentService, build_agent_service
from .tracing import init_tracing_client, shutdown_tracing

logger = logging.getLogger(__name__)

OBSERVATION_PREVIEW = 300


def setup_logging(verbose: bool = False) -> None:
    """Configure logging based on verbosity level."""
    level = logging.DEBUG if verbose else getattr(logging, config.log_level.upper(), logging.WARNING)
    logging.basicConfig(
        level=level,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        handlers=[logging.StreamHandler(sys.stderr)],
    )


def print_banner() -> None:
    """Print the welcome banner."""
    banner = """
╔════════════════════════════════════════════════════════════════╗
║                    IntelliBrowse Interactive                    ║
║                                                                 ║
║  Autonomous web agent: Reason, Act, Observe                     ║
╚════════════════════════════════════════════════════════════════╝

Available commands:
  /help     - Show this help message
  /tools    - List available tools
  /history  - Show the session transcript
  /new      - Start a new session
  /quit     - Exit the CLI

Type your instructions below.
"""
    print(banner)


def render_event(event: StreamEvent, verbose: bool = False) -> None:
    """Write one stream event to stdout."""
    if event.type == "session":
        if verbose:
            print(f"[session {event.session_id}]")
    elif event.type == "assistant":
        sys.stdout.write(event.content or "")
        sys.stdout.flush()
    elif event.type == "toolCall":
        print(f"\n→ {event.tool}({json.dumps(event.params)})")
    elif event.type == "observation":
        text = event.content or ""
        if len(text) > OBSERVATION_PREVIEW and not verbose:
            text = text[:OBSERVATION_PREVIEW] + "..."
        print(f"← {text}\n")
    elif event.type == "complete":
        print("\n" + "═" * 70)
    elif event.type == "error":
        print(f"\nError: {event.content}\n")


class InteractiveCLI:
    """Interactive CLI for IntelliBrowse."""

    def __init__(self, service: AgentService, verbose: bool = False):
        self.service = service
        self.verbose = verbose
        self.session_id: Optional[str] = None

    def print_tools(self) -> None:
        print("\nAvailable Tools:")
        print("─" * 64)
        for i, name in enumerate(self.service.tool_names(), start=1):
            tool = self.service.registry.get(name)
            print(f"{i:2}. {name.ljust(28)} - {tool.description}")
        print()

    def print_history(self) -> None:
        if not self.session_id:
            print("\nNo session yet. Send an instruction first.\n")
            return
        try:
            info = self.service.get_session_info(self.session_id)
        except AgentError as e:
            print(f"\n{e}\n")
            return
        print("\n" + "═" * 70)
        print(f"SESSION {info['sessionId']}")
        print("═" * 70)
        # skip the system prompt
        for message in info["messageHistory"][1:]:
            print(f"\n[{message['role']}]\n{message['content']}")
        print()

    async def new_session(self) -> None:
        if self.session_id:
            await self.service.cleanup_session(self.session_id)
        self.session_id = None
        print("\nStarted a new session.\n")

    async def process_instruction(self, instruction: str) -> None:
        print("\n" + "─" * 70)
        stream = self.service.process_instruction_stream(instruction, self.session_id)
        async for event in stream:
            if event.type == "session":
                self.session_id = event.session_id
            render_event(event, verbose=self.verbose)

    async def run(self) -> None:
        """Run the interactive CLI loop."""
        print_banner()

        while True:
            try:
                user_input = (await asyncio.to_thread(input, ">>> ")).strip()
            except EOFError:
                print("\nGoodbye!\n")
                break

            if not user_input:
                continue

            if user_input.startswith("/"):
                command = user_input.lower()
                if command in ("/quit", "/exit", "/q"):
                    print("\nGoodbye!\n")
                    break
                elif command in ("/help", "/h", "/?"):
                    print_banner()
                elif command == "/tools":
                    self.print_tools()
                elif command == "/history":
                    self.print_history()
                elif command == "/new":
                    await self.new_session()
                else:
                    print(f"\nUnknown command: {user_input}")
                    print("Type /help for available commands.\n")
                continue

            try:
                await self.process_instruction(user_input)
            except AgentError as e:
                print(f"\nError: {e}\n")


async def _run(args: argparse.Namespace) -> int:
    init_tracing_client(
        public_key=config.langfuse.public_key,
        secret_key=config.langfuse.secret_key,
        host=config.langfuse.host,
        debug=config.langfuse.debug,
    )
    service = build_agent_service(config)
    try:
        if args.once:
            if args.json:
                result = await service.process_instruction(args.once)
                print(json.dumps(
                    {"sessionId": result.session_id, "instruction": args.once, "response": result.response},
                    indent=2,
                ))
            else:
                cli = InteractiveCLI(service, verbose=args.verbose)
                await cli.process_instruction(args.once)
        else:
            await InteractiveCLI(service, verbose=args.verbose).run()
    except AgentError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1
    finally:
        await service.cleanup()
        shutdown_tracing()
    return 0


def main() -> None:
    """Main entry point."""
    parser = argparse.ArgumentParser(
        description="IntelliBrowse Interactive CLI",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  %(prog)s                                      # Start interactive mode
  %(prog)s -v                                   # Start with verbose logging
  %(prog)s --once "Find the latest AI news"     # Run a single instruction
  %(prog)s --once "..." --json                  # Buffered answer as JSON

Use /tools in interactive mode to see available tools.
""",
    )
    parser.add_argument(
        "-v",
        "--verbose",
        action="store_true",
        help="Enable verbose logging and full observations",
    )
    parser.add_argument(
        "--once",
        type=str,
        metavar="INSTRUCTION",
        help="Run a single instruction and exit",
    )
    parser.add_argument(
        "--json",
        action="store_true",
        help="With --once, print the final answer as JSON (for scripting)",
    )

    args = parser.parse_args()
    setup_logging(args.verbose)

    try:
        sys.exit(asyncio.run(_run(args)))
    except KeyboardInterrupt:
        print("\nInterrupted.\n")
        sys.exit(130)


if __name__ == "__main__":
    main()
