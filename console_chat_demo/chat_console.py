import os
import sys
import logging
from pathlib import Path

from openai import OpenAI
from dotenv import load_dotenv

PROJECT_ROOT = Path(__file__).resolve().parents[1]
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

from chat_core.chat_tools import ChatTools
from chat_core.completion_stream import CompletionStreamAdapter
from chat_core.context_store import ContextStore
from chat_core.errors import TurnError
from chat_core.runtime_config import RuntimeOptions, add_runtime_args, runtime_options_from_args
from chat_core.session_driver import SessionDriver, is_clear_command
from chat_core.trace_logger import TraceLogger
from chat_core.turn_orchestrator import TurnOrchestrator


logger = logging.getLogger("Console-Chat")

SYSTEM_PROMPT_PATH = PROJECT_ROOT / "prompts" / "chat_assistant.md"


def load_system_prompt(user_id: str) -> str:
    """Read the system prompt template and fill in the session user id."""
    with open(SYSTEM_PROMPT_PATH, "r", encoding = "utf-8") as file:
        template = file.read()
    return template.format(user_id = user_id)


def build_driver(client, model: str, options: RuntimeOptions, store: ContextStore = None) -> SessionDriver:
    """
    Wire store, tools, adapter and orchestrator into a SessionDriver.

    Parameters:
        client: OpenAI-compatible client.
        model: Model name sent with every completion request.
        options: Resolved runtime options.
        store: Optional pre-built context store.
    """
    store = store or ContextStore()
    catalog = ChatTools(store).build_catalog()
    adapter = CompletionStreamAdapter(
        client = client,
        model = model,
        max_tokens = options.max_tokens,
        timeout = options.completion_timeout,
    )
    orchestrator = TurnOrchestrator(
        adapter = adapter,
        catalog = catalog,
        system_prompt = load_system_prompt(options.user_id),
        max_tool_rounds = options.max_tool_rounds,
        tool_timeout = options.tool_timeout,
        max_tool_retries = options.max_tool_retries,
        trace_logger = TraceLogger(enabled = options.show_llm_response, logger = logger),
    )
    return SessionDriver(store = store, orchestrator = orchestrator)


def _print_chunk(chunk: str) -> None:
    sys.stdout.write(chunk)
    sys.stdout.flush()


def run_once(driver: SessionDriver, user_id: str, prompt: str) -> bool:
    """Run one input through the driver, streaming the answer to stdout."""
    if is_clear_command(prompt):
        print(driver.handle_input(user_id, prompt))
        return True

    sys.stdout.write("\033[92mAssistant:\033[0m ")
    sys.stdout.flush()
    try:
        driver.handle_input(user_id, prompt, on_text = _print_chunk)
    except TurnError as exc:
        sys.stdout.write("\n")
        logger.error(f"Turn failed, context left unchanged: {exc}")
        return False
    sys.stdout.write("\n\n")
    sys.stdout.flush()
    return True


def parse_args():
    """
    Parse command line arguments.

    Returns:
        argparse.Namespace: Parsed CLI arguments.
    """
    import argparse

    parser = argparse.ArgumentParser(description = "Console Chat - per-user chat with tool calling")
    parser.add_argument(
        "prompt",
        nargs = "?",
        help = "Single prompt to run instead of the interactive loop",
    )
    add_runtime_args(parser)

    args = parser.parse_args()
    args.runtime_options = runtime_options_from_args(args)
    return args


def main():
    """
    Main function to run the console chat from command line.
    """
    load_dotenv()
    args = parse_args()
    options = args.runtime_options

    logging.basicConfig(
        level = logging.INFO,
        format = '%(asctime)s - %(name)s - %(levelname)s - %(message)s',
        handlers = [logging.StreamHandler()],
    )

    client = OpenAI(
        base_url = os.getenv("LLM_BASE_URL"),
        api_key = os.getenv("LLM_API_KEY"),
    )
    driver = build_driver(client = client, model = os.getenv("LLM_MODEL"), options = options)
    user_id = options.user_id

    if args.prompt:
        return 0 if run_once(driver, user_id, args.prompt) else 1

    logger.info("=" * 80)
    logger.info(f"Current User Session: {user_id}")
    logger.info("=" * 80)
    logger.info("Type 'clear my context' to reset, 'exit' or 'quit' to end the conversation")
    logger.info("-" * 60)

    try:
        while True:
            prompt = input(f"\033[94m[{user_id}] User:\033[0m ").strip()
            if prompt.lower() in ["exit", "quit"]:
                logger.info("Conversation ended.")
                break

            if not prompt:
                continue

            run_once(driver, user_id, prompt)
    except (KeyboardInterrupt, EOFError):
        logger.info("\nConversation interrupted.")

    return 0


if __name__ == "__main__":
    sys.exit(main())
