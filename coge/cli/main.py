"""
coge CLI - turn a natural-language instruction into a shell command.

Examples:
    coge list files larger than 100MB
    coge --non-interactive show disk usage | sh
    coge --stats
    coge --arms
    coge --ptestall
    coge --pull-models groq
    coge --configure
"""

import asyncio
import logging
import subprocess
import sys
import time
from dataclasses import dataclass
from typing import Optional, Tuple

import click
import pyperclip
from dotenv import load_dotenv
from rich.markup import escape

from coge import __version__
from coge.backends import BACKENDS, configured_backends, create_backend, default_models, get_spec
from coge.cli.colors import arms_table, console, print_debug, print_error, print_success, print_warning, stats_table
from coge.config import (
    BackendSettings,
    CogeConfig,
    get_config_dir,
    get_config_path,
    load_config,
    write_config,
    write_default_config_if_missing,
)
from coge.core import constants
from coge.core.errors import BackendError, CogeError
from coge.observability.usage_stats import UsageStatsRecorder
from coge.prompts import PTEST_PROMPT, build_system_prompt
from coge.routing import (
    ArmStore,
    AutoBlacklister,
    OutcomeRecorder,
    RaceCoordinator,
    arm_key_for,
    model_for,
    pick_providers,
)

logger = logging.getLogger(__name__)

KEY_ACTIONS = {"\r": "execute", "\n": "execute", "c": "copy", "C": "copy", "\x1b": "cancel", "q": "cancel"}


@dataclass
class Generation:
    """A generated command and the arm that produced it."""

    command: str
    arm_key: str
    coordinator: Optional[RaceCoordinator] = None


def _configure_logging(debug: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if debug else logging.WARNING,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )
    # HTTP client chatter drowns out race decisions
    for noisy in ("httpx", "httpcore", "openai"):
        logging.getLogger(noisy).setLevel(logging.WARNING)


async def generate(config: CogeConfig, prompt_text: str, debug: bool = False) -> Generation:
    """Pick backends, race them, and return the winning command.

    With a single selected backend the call is made directly and nothing is
    learned. With several, the race's post-race updates keep running on the
    returned coordinator; drain it before the event loop closes.
    """
    defaults = default_models()
    system_prompt = build_system_prompt()
    config_dir = get_config_dir()

    pick = pick_providers(config, configured_backends(), defaults, store=ArmStore.default(config_dir))
    if debug and pick.arms:
        print_debug(f"Bandit arms: {', '.join(pick.arms)}")

    if len(pick.selected) <= 1:
        name = pick.selected[0] if pick.selected else config.provider
        backend = create_backend(name, model_for(config, name, defaults))
        command = await backend.generate(system_prompt, prompt_text)
        return Generation(command=command, arm_key=arm_key_for(config, name, defaults))

    if debug:
        print_debug(f"Racing providers: {', '.join(pick.selected)}")

    coordinator = RaceCoordinator(
        factory=lambda name: create_backend(name, model_for(config, name, defaults)),
        on_settled=[
            OutcomeRecorder(ArmStore.default(config_dir), lambda name: arm_key_for(config, name, defaults)).record,
            AutoBlacklister(lambda name: model_for(config, name, defaults)).apply,
        ],
    )
    try:
        winner = await coordinator.race(pick.selected, system_prompt, prompt_text)
    except CogeError:
        await coordinator.drain()
        raise
    if debug:
        print_debug(f"Winner: {winner.backend}")
    return Generation(
        command=winner.text,
        arm_key=arm_key_for(config, winner.backend, defaults),
        coordinator=coordinator,
    )


async def _read_action() -> str:
    """Block (off the event loop) until the user presses a recognised key."""
    while True:
        key = await asyncio.to_thread(click.getchar)
        if key in KEY_ACTIONS:
            return KEY_ACTIONS[key]


async def _run_prompt(config: CogeConfig, prompt_text: str, non_interactive: bool, debug: bool) -> Tuple[str, str]:
    """Generate, let the user choose what to do, and record the choice.

    Returns:
        (action, command)
    """
    start = time.perf_counter()
    generation = await generate(config, prompt_text, debug=debug)
    if debug:
        print_debug(f"Response time: {(time.perf_counter() - start) * 1000:.0f}ms")

    stats = UsageStatsRecorder.default()
    try:
        if non_interactive:
            action = "execute"
            click.echo(generation.command)
        else:
            click.echo(f"\n{generation.command}")
            console.print(f"[dim]  {escape('[Enter] Execute  [c] Copy  [Esc] Cancel')}[/dim]")
            action = await _read_action()
        stats.record_action(generation.arm_key, action)
    finally:
        if generation.coordinator is not None:
            await generation.coordinator.drain()
    return action, generation.command


async def _ptest_all(config: CogeConfig) -> bool:
    """Call every configured backend once, sequentially. True if all answered."""
    configured = configured_backends()
    if not configured:
        print_error("No providers configured. Set API key environment variables first.")
        return False

    defaults = default_models()
    system_prompt = build_system_prompt()
    console.print("Testing all configured providers...\n")

    passed = 0
    for name in configured:
        model = model_for(config, name, defaults)
        label = f"{name} ({model})".ljust(40)
        start = time.perf_counter()
        try:
            response = await create_backend(name, model).generate(system_prompt, PTEST_PROMPT)
        except CogeError as e:
            first_line = e.message.splitlines()[0][:80] if e.message else "unknown error"
            console.print(f"  [error]✗[/error]  {label} {escape(first_line)}", highlight=False)
            continue
        latency = (time.perf_counter() - start) * 1000
        preview = response.splitlines()[0][:60]
        console.print(f"  [success]✓[/success]  {label} {latency:.0f}ms  \"{escape(preview)}\"", highlight=False)
        if not response.strip().lower().startswith("ls"):
            print_warning(f'{name}: output does not start with "ls"')
        passed += 1

    console.print(f"\nResults: {passed}/{len(configured)} passed")
    return passed == len(configured)


async def _pull_models(name: str) -> Tuple[str, BackendSettings]:
    """Fetch a backend's model list and store it as that backend's available models.

    Returns:
        (backend name, settings entry after the update)
    """
    spec = get_spec(name)
    console.print(f"Fetching models for {spec.name}...")
    model_ids = await create_backend(spec.name).list_models()
    if not model_ids:
        raise BackendError(f"{spec.name} returned no models.", backend=spec.name)

    config = load_config()
    entry = config.providers.get(spec.name) or BackendSettings(
        default=spec.default_model,
        blacklist=list(spec.blacklist),
    )
    entry.available = model_ids
    config.providers[spec.name] = entry
    write_config(config)
    logger.debug("Stored %d models for %s", len(model_ids), spec.name)
    return spec.name, entry


def _model_markup(model: str, blacklist) -> str:
    if model in blacklist:
        return f"[dim][strike]{escape(model)}[/strike][/dim]"
    return escape(model)


def _run_configure() -> None:
    """Interactive strategy / backend / model selection."""
    current = load_config()
    console.print(f"Current config: {get_config_path()}")

    strategy = click.prompt(
        "Strategy: auto (bandit picks fastest) / manual (you choose)",
        type=click.Choice(["auto", "manual"], case_sensitive=False),
        default=current.strategy,
    ).lower()

    if strategy == "auto":
        current.strategy = "auto"
        write_config(current)
        print_success("Strategy set to auto (bandit will learn fastest providers).")
        console.print(f"Config saved to {get_config_path()}")
        return

    provider = click.prompt(
        "Provider",
        type=click.Choice(list(BACKENDS), case_sensitive=False),
        default=current.provider,
    ).lower()

    entry = current.providers.get(provider) or BackendSettings(
        default=BACKENDS[provider].default_model,
        available=list(BACKENDS[provider].available),
        blacklist=list(BACKENDS[provider].blacklist),
    )
    if entry.available:
        shown = [_model_markup(model, entry.blacklist) for model in entry.available]
        console.print(f"Available models: {', '.join(shown)}")

    model = click.prompt(f"Model for {provider}", default=entry.default or current.model).strip()
    entry.default = model
    current.providers[provider] = entry
    current.provider = provider
    current.model = model
    current.strategy = "manual"
    write_config(current)
    console.print(f"Config saved to {get_config_path()}")


@click.command(context_settings={"help_option_names": ["-h", "--help"]})
@click.version_option(version=__version__, prog_name="coge")
@click.argument("prompt", nargs=-1)
@click.option("--non-interactive", is_flag=True, help="Print command and exit (for pipelines)")
@click.option("--debug", is_flag=True, help="Show config, provider, and timing info")
@click.option("--stats", "show_stats", is_flag=True, help="Show usage statistics per provider/model")
@click.option("--arms", "show_arms", is_flag=True, help="Show learned speed/reliability per provider/model")
@click.option("--ptestall", is_flag=True, help="Test all configured providers")
@click.option("--pull-models", "pull_models", metavar="PROVIDER", help="Fetch a provider's model list into config")
@click.option("-c", "--configure", is_flag=True, help="Configure strategy, provider and model")
def cli(prompt, non_interactive, debug, show_stats, show_arms, ptestall, pull_models, configure):
    """
    coge - AI-powered command generator.

    Describe what you want in plain words; coge asks one or more providers
    for a shell command and shows the first answer.
    """
    _configure_logging(debug)
    try:
        constants.load_config()
        write_default_config_if_missing()

        if configure:
            _run_configure()
            return
        if show_stats:
            stats = UsageStatsRecorder.default().load()
            if not stats:
                console.print("No usage stats recorded yet.")
            else:
                console.print(stats_table(stats))
            return
        if show_arms:
            state = ArmStore.default().load()
            if not state:
                console.print("No bandit data recorded yet.")
            else:
                console.print(arms_table(state))
            return
        if pull_models:
            name, entry = asyncio.run(_pull_models(pull_models))
            print_success(f"Updated {name} available models ({len(entry.available)}):")
            for model in entry.available:
                suffix = " [dim](blacklisted)[/dim]" if model in entry.blacklist else ""
                console.print(f"  {_model_markup(model, entry.blacklist)}{suffix}", highlight=False)
            return

        config = load_config()
        if ptestall:
            ok = asyncio.run(_ptest_all(config))
            sys.exit(0 if ok else 1)

        prompt_text = " ".join(prompt).strip()
        if not prompt_text:
            raise click.UsageError("No prompt provided.")

        if debug:
            print_debug(f"Config: {get_config_path()}")
            print_debug(f"Provider: {config.provider}")
            print_debug(f"Model: {config.model}")
            print_debug(f"Strategy: {config.strategy}")

        action, command = asyncio.run(_run_prompt(config, prompt_text, non_interactive, debug))
    except CogeError as e:
        print_error(e.message)
        sys.exit(1)

    if non_interactive:
        return
    if action == "copy":
        try:
            pyperclip.copy(command)
        except pyperclip.PyperclipException as e:
            print_warning(f"Could not copy to clipboard: {e}")
            sys.exit(1)
    elif action == "execute":
        completed = subprocess.run(command, shell=True)
        sys.exit(completed.returncode)


def main():
    """Entry point for CLI."""
    load_dotenv()
    cli()


if __name__ == "__main__":
    main()
