"""
CLI entrypoint for the ``how`` shell assistant.

Examples:
    how ask "find files larger than 100MB"
    how ask --provider claude --stream "undo my last git commit"
    how ask --dry-run "why is my build failing"
    how providers list
    how providers test
    how models claude
    how context
    how setup
    how install --shell zsh
"""

from __future__ import annotations

import argparse
import logging
import os
import shutil
import sys
from dataclasses import asdict, replace
from getpass import getpass
from typing import Dict, List, Tuple

from .collectors import ContextGatherer, detect_shell
from .config import API_KEY_ENV_VARS, AppConfig, load_config, save_config
from .env import load_default_env
from .exceptions import (
    HowError,
    NoSuitableProviderError,
    ProviderLoadError,
    ProviderNotFoundError,
)
from .extractor import CommandExtractor, ExtractedCommands
from .models import models_for
from .prompt import PromptBuilder, build_system_context
from .providers.base import Provider
from .providers.ollama_provider import OllamaProvider
from .registry import ProviderManager, ProviderRequirements, default_factory
from .types import SHELLS, Context, ProviderConfig, Response

logger = logging.getLogger(__name__)

EXIT_OK = 0
EXIT_ERROR = 1
EXIT_CANCELLED = 130


def _configure_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )


def _load_manager(
    config: AppConfig, required: str | None = None
) -> Tuple[ProviderManager, Dict[str, ProviderLoadError]]:
    """
    Load every configured provider, skipping the ones that fail.

    A failure of the ``required`` provider is raised instead of skipped.
    """
    manager = ProviderManager()
    failures: Dict[str, ProviderLoadError] = {}
    for name, provider_config in config.providers.items():
        try:
            manager.reload_provider(name, provider_config)
        except ProviderLoadError as exc:
            if name == required:
                raise
            logger.warning("Skipping provider %s: %s", name, exc.cause)
            failures[name] = exc
    return manager, failures


def _resolve_provider(
    args: argparse.Namespace, config: AppConfig, requirements: ProviderRequirements
) -> Tuple[str, Provider]:
    if not config.providers:
        raise NoSuitableProviderError(f"no providers configured; add one to {config.path}")
    name = args.provider or config.current_provider or None
    manager, _ = _load_manager(config, required=name)
    return manager.resolve(name, requirements)


def _gather(config: AppConfig) -> Context:
    return ContextGatherer(config.context).gather()


def _print_commands(extracted: ExtractedCommands) -> None:
    if not extracted.has_commands():
        return
    print("\nSuggested commands:")
    for index, command in enumerate(extracted.commands, start=1):
        marker = "" if command.safe else " [!]"
        description = f"  # {command.description}" if command.description else ""
        print(f"  {index}. {command.command}{marker}{description}")
    for workflow in extracted.workflows:
        title = workflow.name
        if workflow.description:
            title = f"{title}: {workflow.description}"
        print(f"\n  {title}")
        for step in workflow.steps:
            marker = "" if step.safe else " [!]"
            print(f"    {step.order}. {step.command}{marker}")


def _stream_answer(
    provider: Provider, prompt: str, context: Context, extractor: CommandExtractor
) -> str:
    """Print chunks as they arrive, holding back the structured commands block."""
    stream = provider.send_prompt_stream(prompt, context)
    shown = 0
    try:
        for chunk in stream:
            if chunk.done:
                if chunk.error is not None:
                    raise chunk.error
                break
            visible = extractor.visible_length(stream.text)
            if visible > shown:
                print(stream.text[shown:visible], end="", flush=True)
                shown = visible
    finally:
        stream.close()
    print(stream.text[shown : extractor.visible_length(stream.text, final=True)])
    return stream.text


def ask(args: argparse.Namespace) -> int:
    config = load_config(args.config)
    context = _gather(config)
    prompt = " ".join(args.prompt)

    if args.dry_run:
        print(PromptBuilder().build(context))
        return EXIT_OK

    name, provider = _resolve_provider(
        args, config, ProviderRequirements(streaming=args.stream)
    )
    logger.info("Using provider %s", name)
    extractor = CommandExtractor()

    if args.stream and provider.get_capabilities().streaming:
        text = _stream_answer(provider, prompt, context, extractor)
    else:
        if args.stream:
            logger.info("Provider %s does not stream; waiting for the full answer", name)
        response: Response = provider.send_prompt(prompt, context)
        logger.debug(
            "Answer from %s in %.2fs (%d tokens)",
            response.model,
            response.response_time,
            response.tokens_used,
        )
        text = response.text
        print(extractor.strip(text))

    _print_commands(extractor.extract(text))
    return EXIT_OK


def list_providers(args: argparse.Namespace) -> int:
    config = load_config(args.config)
    manager, failures = _load_manager(config)
    for info in manager.list_providers():
        print(f"- {info.name} [{info.type}] model={info.model}")
    for name, error in failures.items():
        print(f"- {name}: failed to load ({error.cause})")
    if not config.providers:
        print(f"No providers configured in {config.path}")
    return EXIT_OK


def test_providers(args: argparse.Namespace) -> int:
    config = load_config(args.config)
    manager, failures = _load_manager(config, required=args.name)
    results: Dict[str, HowError | None] = dict(failures)
    results.update(manager.health_check(live=True))
    if args.name:
        if args.name not in results:
            raise ProviderNotFoundError(args.name, results.keys())
        results = {args.name: results[args.name]}

    status = EXIT_OK
    for name in sorted(results):
        error = results[name]
        if error is None:
            print(f"✓ {name}")
        else:
            status = EXIT_ERROR
            print(f"✗ {name} ({error.kind}): {error}")
    return status


def show_capabilities(args: argparse.Namespace) -> int:
    config = load_config(args.config)
    name, provider = _resolve_provider(args, config, ProviderRequirements())
    print(f"{name}:")
    for key, value in asdict(provider.get_capabilities()).items():
        print(f"  {key}: {value}")
    return EXIT_OK


def list_models(args: argparse.Namespace) -> int:
    config = load_config(args.config)
    _, provider = _resolve_provider(args, config, ProviderRequirements())
    for model in provider.get_models():
        print(model)
    return EXIT_OK


def show_context(args: argparse.Namespace) -> int:
    config = load_config(args.config)
    context = _gather(config)
    print(build_system_context(context) or "(no context gathered)")
    if context.files:
        print(f"\nFiles: {len(context.files)}")
    return EXIT_OK


# -----------------------------------------------------------------------------
# Setup and shell integration
# -----------------------------------------------------------------------------

SETUP_PROVIDERS: List[Tuple[str, str, str]] = [
    ("anthropic", "Anthropic (Claude)", "claude-3-5-sonnet-20241022"),
    ("openai", "OpenAI (GPT)", "gpt-4o"),
    ("ollama", "Ollama (local models)", "llama3.2"),
    ("local", "Local echo (offline)", "echo"),
]
HISTORY_CHOICES = ["0", "3", "5", "10"]

SHELL_CONFIG_FILES = {
    "bash": "~/.bashrc",
    "zsh": "~/.zshrc",
    "fish": "~/.config/fish/config.fish",
    "other": "~/.profile",
}


def _ask(prompt: str, default: str = "") -> str:
    suffix = f" [{default}]" if default else ""
    return input(f"{prompt}{suffix}: ").strip() or default


def _confirm(prompt: str, default: bool = True) -> bool:
    hint = "Y/n" if default else "y/N"
    while True:
        answer = input(f"{prompt} [{hint}]: ").strip().lower()
        if not answer:
            return default
        if answer in ("y", "yes"):
            return True
        if answer in ("n", "no"):
            return False
        print("Please answer y or n.")


def _choose(prompt: str, options: List[str], default: int = 0) -> int:
    """Print a numbered menu and return the index of the chosen option."""
    print(prompt)
    for index, option in enumerate(options, start=1):
        print(f"  {index}. {option}")
    while True:
        answer = _ask("Choice", str(default + 1))
        if answer.isdigit() and 1 <= int(answer) <= len(options):
            return int(answer) - 1
        print(f"Enter a number between 1 and {len(options)}.")


def _available_models(config: ProviderConfig) -> List[str]:
    """Ask the backend for its models, falling back to the built-in catalog."""
    try:
        models = default_factory.create_provider(config).get_models()
    except HowError as exc:
        logger.debug("Model listing for %s failed: %s", config.type, exc)
        print(f"Could not list models ({exc.kind}); showing the built-in catalog.")
        models = []
    return models or [model.id for model in models_for(config.type)] or [config.model]


def setup(args: argparse.Namespace) -> int:
    """Interactive wizard that adds a provider and writes the config file."""
    config = load_config(args.config, apply_environment=False)
    print("Setting up 'how' shell assistant\n")

    labels = [label for _, label, _ in SETUP_PROVIDERS]
    provider_type, label, default_model = SETUP_PROVIDERS[
        _choose("Which AI provider would you like to use?", labels)
    ]
    name = _ask("Name for this provider", provider_type)

    api_key = ""
    env_var = API_KEY_ENV_VARS.get(provider_type)
    if env_var:
        api_key = getpass(f"Enter your {label} API key (empty to use ${env_var}): ").strip()
    base_url = ""
    if provider_type == "ollama":
        base_url = _ask("Ollama base URL", OllamaProvider.DEFAULT_BASE_URL)

    lookup_key = api_key or (os.environ.get(env_var, "") if env_var else "")
    draft = ProviderConfig(
        type=provider_type, api_key=lookup_key, model=default_model, base_url=base_url
    )
    models = _available_models(draft)
    default = models.index(default_model) if default_model in models else 0
    model = models[_choose("Choose a model:", models, default)]

    config.providers[name] = replace(draft, api_key=api_key, model=model)
    config.current_provider = name

    config.context.include_files = _confirm("Include current directory files in context?")
    config.context.include_history = int(
        HISTORY_CHOICES[_choose("How many recent commands to include?", HISTORY_CHOICES, 2)]
    )
    config.display.syntax_highlight = _confirm("Enable syntax highlighting?")
    config.display.emoji = _confirm("Use emoji in output?")

    path = save_config(config, args.config)
    print(f"\nConfiguration saved to {path}\n")
    print("Next steps:")
    print("  • Run 'how install' to set up shell integration")
    print('  • Try: how ask "how to use grep?"')
    return EXIT_OK


def shell_integration(shell: str, binary: str = "how") -> str:
    """Snippet that defines an ``ask`` shortcut for the given shell."""
    if shell == "fish":
        return f"# how shell assistant\nfunction ask\n    {binary} ask $argv\nend\n"
    if shell == "zsh":
        # noglob keeps '?' and '*' in questions from being expanded.
        return f"# how shell assistant\nalias ask='noglob {binary} ask'\n"
    return f'# how shell assistant\nask() {{ {binary} ask "$@"; }}\n'


def install(args: argparse.Namespace) -> int:
    shell = args.shell or detect_shell()
    binary = shutil.which("how") or "how"
    config_file = SHELL_CONFIG_FILES[shell]

    print(f"Detected shell: {shell}\n")
    print(f"Add this to {config_file}:\n")
    print(shell_integration(shell, binary))
    print("Then reload your shell:")
    print(f"  source {config_file}")
    return EXIT_OK


def build_parser() -> argparse.ArgumentParser:
    common = argparse.ArgumentParser(add_help=False)
    common.add_argument("--config", help="Path to config.yaml (default: ~/.config/how/config.yaml)")
    common.add_argument("--verbose", "-v", action="store_true", help="Enable debug logging")

    parser = argparse.ArgumentParser(
        prog="how", description="Ask an LLM how to do things in your shell"
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    ask_parser = subparsers.add_parser("ask", help="Ask a question", parents=[common])
    ask_parser.add_argument("prompt", nargs="+", help="Question to ask")
    ask_parser.add_argument("--provider", help="Configured provider name to use")
    ask_parser.add_argument("--stream", action="store_true", help="Stream the answer")
    ask_parser.add_argument(
        "--dry-run", action="store_true", help="Print the composed system prompt and exit"
    )
    ask_parser.set_defaults(func=ask)

    providers_parser = subparsers.add_parser(
        "providers", help="Inspect configured providers"
    )
    providers_sub = providers_parser.add_subparsers(dest="action", required=True)

    list_parser = providers_sub.add_parser("list", help="List loaded providers", parents=[common])
    list_parser.set_defaults(func=list_providers)

    test_parser = providers_sub.add_parser(
        "test", help="Validate providers and contact their backends", parents=[common]
    )
    test_parser.add_argument("name", nargs="?", help="Only test this provider")
    test_parser.set_defaults(func=test_providers)

    caps_parser = providers_sub.add_parser(
        "capabilities", help="Show a provider's capabilities", parents=[common]
    )
    caps_parser.add_argument("provider", nargs="?", help="Provider name")
    caps_parser.set_defaults(func=show_capabilities)

    models_parser = subparsers.add_parser(
        "models", help="List models offered by a provider", parents=[common]
    )
    models_parser.add_argument("provider", nargs="?", help="Provider name")
    models_parser.set_defaults(func=list_models)

    context_parser = subparsers.add_parser(
        "context", help="Show the context that would be sent", parents=[common]
    )
    context_parser.set_defaults(func=show_context)

    setup_parser = subparsers.add_parser(
        "setup", help="Interactive configuration wizard", parents=[common]
    )
    setup_parser.set_defaults(func=setup)

    install_parser = subparsers.add_parser(
        "install", help="Print the shell integration snippet", parents=[common]
    )
    install_parser.add_argument(
        "--shell", choices=SHELLS, help="Target shell (default: detected from $SHELL)"
    )
    install_parser.set_defaults(func=install)

    return parser


def main(argv: List[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    _configure_logging(args.verbose)
    load_default_env()

    try:
        return args.func(args)
    except (KeyboardInterrupt, EOFError):
        print("\nCancelled.", file=sys.stderr)
        return EXIT_CANCELLED
    except HowError as exc:
        print(f"Error ({exc.kind}): {exc}", file=sys.stderr)
        return EXIT_ERROR


if __name__ == "__main__":
    sys.exit(main())
