"""
Command-line interface for component generation.

Provides subcommands to generate components, validate configuration
documents, inspect adapters and components and check library migrations.
"""

import argparse
import asyncio
import json
import sys
from pathlib import Path
from typing import Any

from rich import box
from rich.console import Console
from rich.panel import Panel
from rich.syntax import Syntax
from rich.table import Table

from . import __version__
from . import utils
from .codegen import create_generator
from .codegen.core.config import ConfigurationStore, EngineConfig, load_engine_config
from .codegen.core.errors import ForgeError
from .codegen.core.generator import BatchResult, GenerationRequest
from .codegen.core.validation import ConfigValidator, ValidationResult
from .logging_config import get_logger, setup_logging

logger = get_logger(__name__)

console = Console()


def create_parser() -> argparse.ArgumentParser:
    """Build the argument parser with all subcommands."""
    parser = argparse.ArgumentParser(
        prog="component-forge",
        description="Generate target-library UI components from semantic definitions",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  component-forge generate Button --library primevue
  component-forge generate Button Card --library vuetify --theme dark -o out.json
  component-forge validate my-components/Badge.json
  component-forge migrate-check primevue vuetify
        """.strip(),
    )
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    parser.add_argument("--config", help="Engine settings file (JSON)")
    parser.add_argument(
        "--component-dir",
        action="append",
        default=[],
        help="Extra directory with component definitions (repeatable)",
    )
    parser.add_argument(
        "--adapter-dir",
        action="append",
        default=[],
        help="Extra directory with adapter documents (repeatable)",
    )
    parser.add_argument(
        "--log-level",
        choices=["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"],
        help="Logging level (default: FORGE_LOG_LEVEL or WARNING)",
    )
    parser.add_argument("--log-file", help="Also write logs to this file")

    subparsers = parser.add_subparsers(dest="command", metavar="COMMAND")

    generate = subparsers.add_parser("generate", help="Generate one or more components")
    generate.add_argument("components", nargs="+", help="Semantic component names")
    generate.add_argument("--library", "-l", help="Target library (default from settings)")
    generate.add_argument("--theme", help="Theme to resolve tokens for")
    generate.add_argument("--props", help="Prop values as a JSON object (single component)")
    generate.add_argument("--typescript", action="store_true", help="Attach type descriptors")
    generate.add_argument("--strict", action="store_true", help="Warn on output prop collisions")
    generate.add_argument("--no-optimize", action="store_true", help="Skip output optimizations")
    generate.add_argument(
        "--partition-static", action="store_true", help="Split props into static and dynamic"
    )
    generate.add_argument(
        "--skip-unsupported",
        action="store_true",
        help="Skip components the library does not map instead of failing",
    )
    generate.add_argument("--output", "-o", help="Write artifacts as JSON to this file")

    validate = subparsers.add_parser("validate", help="Validate component or adapter documents")
    validate.add_argument("sources", nargs="+", help="Document paths or URLs")

    adapters = subparsers.add_parser("adapters", help="List available adapters")
    adapters.add_argument("--info", metavar="LIBRARY", help="Show details for one adapter")

    subparsers.add_parser("components", help="List available semantic components")

    migrate = subparsers.add_parser(
        "migrate-check", help="Check feature coverage between two libraries"
    )
    migrate.add_argument("from_library", help="Library migrating from")
    migrate.add_argument("to_library", help="Library migrating to")

    return parser


def main(argv: list[str] | None = None) -> int:
    """CLI entry point."""
    parser = create_parser()
    args = parser.parse_args(argv)

    setup_logging(args.log_level, args.log_file)

    if not args.command:
        parser.print_help()
        return 0

    try:
        config = _build_config(args)
    except ForgeError as e:
        console.print(f"[red]✗ Configuration error:[/red] {e}")
        return 1

    handlers = {
        "generate": _handle_generate,
        "validate": _handle_validate,
        "adapters": _handle_adapters,
        "components": _handle_components,
        "migrate-check": _handle_migrate_check,
    }

    try:
        return handlers[args.command](args, config)
    except ForgeError as e:
        console.print(f"[red]✗ Error:[/red] {e}")
        return 1
    except KeyboardInterrupt:
        console.print("\n[yellow]Interrupted[/yellow]")
        return 130


def _build_config(args: argparse.Namespace) -> EngineConfig:
    overrides: dict[str, Any] = {}
    if args.component_dir:
        overrides["component_dirs"] = args.component_dir
    if args.adapter_dir:
        overrides["adapter_dirs"] = args.adapter_dir
    if args.log_level:
        overrides["log_level"] = args.log_level
    return load_engine_config(args.config, overrides)


# Generate


def _handle_generate(args: argparse.Namespace, config: EngineConfig) -> int:
    generator = create_generator(config)
    options = generator.default_options.merged(
        {
            "theme": args.theme,
            "typescript": args.typescript or generator.default_options.typescript,
            "strict": args.strict or generator.default_options.strict,
            "optimize": generator.default_options.optimize and not args.no_optimize,
            "partition_static": args.partition_static or generator.default_options.partition_static,
        }
    )

    props = None
    if args.props:
        if len(args.components) > 1:
            console.print("[red]✗[/red] --props applies to a single component")
            return 1
        try:
            props = json.loads(args.props)
        except json.JSONDecodeError as e:
            console.print(f"[red]✗ Invalid --props JSON:[/red] {e}")
            return 1
        if not isinstance(props, dict):
            console.print("[red]✗[/red] --props must be a JSON object")
            return 1

    requests = [
        GenerationRequest(name, options, props=props, adapter=args.library)
        for name in args.components
    ]
    result = generator.generate_batch(
        requests, skip_unsupported=args.skip_unsupported, adapter=args.library
    )

    payload = {
        "artifacts": [artifact.to_dict() for artifact in result.done],
        **{k: v for k, v in result.summary().items() if k != "done"},
    }
    output = json.dumps(payload, indent=2, ensure_ascii=False, default=str)

    if args.output:
        output_path = Path(args.output)
        try:
            output_path.write_text(output, encoding="utf-8")
        except OSError as e:
            console.print(f"[red]✗ Failed to write to {output_path}:[/red] {e}")
            return 1
        console.print(f"[green]✓[/green] Artifacts saved to [cyan]{output_path}[/cyan]")
    else:
        console.print(Syntax(output, "json", theme="monokai"))

    _print_batch_summary(result)
    return 0 if result.ok else 1


def _print_batch_summary(result: BatchResult):
    table = Table(title="📊 Generation Summary", box=box.ROUNDED, title_style="bold cyan")
    table.add_column("Component", style="bold")
    table.add_column("Status")
    table.add_column("Details", style="dim")

    for artifact in result.done:
        details = f"<{artifact.tag}> via {artifact.metadata.adapter}"
        if artifact.metadata.warnings:
            details += f" ({len(artifact.metadata.warnings)} warnings)"
        table.add_row(artifact.component, "[green]done[/green]", details)
    for item in result.failed:
        table.add_row(item.component, "[red]failed[/red]", item.reason)
    for item in result.skipped:
        table.add_row(item.component, "[yellow]skipped[/yellow]", item.reason)

    console.print()
    console.print(table)


# Validate


def _handle_validate(args: argparse.Namespace, config: EngineConfig) -> int:
    validator = ConfigValidator()
    failures = 0

    for source in args.sources:
        try:
            description, data = utils.load_document(source)
        except ForgeError as e:
            console.print(f"[red]✗ {source}:[/red] {e}")
            failures += 1
            continue

        if "componentMappings" in data:
            kind = "adapter"
            result = validator.validate_adapter(data)
        else:
            kind = "component"
            result = validator.validate(data)

        _print_validation(description, kind, result)
        if not result.valid:
            failures += 1

    return 1 if failures else 0


def _print_validation(source: str, kind: str, result: ValidationResult):
    status = "[green]✓ valid[/green]" if result.valid else "[red]✗ invalid[/red]"
    lines = [f"{status} {kind}"]
    lines.extend(f"[red]error:[/red] {error}" for error in result.errors)
    lines.extend(f"[yellow]warning:[/yellow] {warning}" for warning in result.warnings)
    console.print(
        Panel(
            "\n".join(lines),
            title=source,
            border_style="green" if result.valid else "red",
        )
    )


# Listings


def _handle_adapters(args: argparse.Namespace, config: EngineConfig) -> int:
    generator = create_generator(config)
    registry = generator.registry

    if args.info:
        adapter = asyncio.run(registry.load_adapter(args.info))
        info = adapter.info()
        body = "\n".join(
            [
                f"[bold]Name:[/bold] {info['display_name']} ({info['name']})",
                f"[bold]Version:[/bold] {info['version']}",
                f"[bold]Versions:[/bold] {', '.join(info['versions']) or 'n/a'}",
                f"[bold]Components:[/bold] {', '.join(info['components'])}",
                f"[bold]Features:[/bold] {', '.join(info['features'])}",
                f"[bold]Source:[/bold] {info['source'] or '<memory>'}",
            ]
        )
        console.print(Panel(body, title=f"🔌 {info['display_name']}", border_style="blue"))
        return 0

    names = registry.list_available_adapters()
    if not names:
        console.print("[yellow]⚠️ No adapters available[/yellow]")
        return 0

    table = Table(title="🔌 Available Adapters", box=box.ROUNDED, title_style="bold cyan")
    table.add_column("Library", style="bold green")
    table.add_column("Version", style="cyan")
    table.add_column("Components", style="dim")

    for name in names:
        try:
            adapter = asyncio.run(registry.load_adapter(name))
        except ForgeError as e:
            table.add_row(name, "[red]error[/red]", str(e))
            continue
        table.add_row(adapter.name, adapter.version, ", ".join(adapter.supported_components()))

    console.print(table)
    return 0


def _handle_components(args: argparse.Namespace, config: EngineConfig) -> int:
    store = ConfigurationStore.from_config(config)
    names = store.list_components()
    if not names:
        console.print("[yellow]⚠️ No components available[/yellow]")
        return 0

    table = Table(title="🧩 Semantic Components", box=box.ROUNDED, title_style="bold cyan")
    table.add_column("Component", style="bold green")
    table.add_column("Base", style="cyan")
    table.add_column("Props", justify="right")
    table.add_column("Depends on", style="dim")

    for name in names:
        try:
            definition = store.load_component(name)
        except ForgeError as e:
            table.add_row(name, "[red]error[/red]", "-", str(e))
            continue
        table.add_row(
            definition.name,
            definition.base_component,
            str(len(definition.props)),
            ", ".join(definition.dependencies) or "-",
        )

    console.print(table)
    return 0


# Migration


def _handle_migrate_check(args: argparse.Namespace, config: EngineConfig) -> int:
    registry = create_generator(config).registry
    report = asyncio.run(
        registry.check_migration_compatibility(args.from_library, args.to_library)
    )

    colour = "green" if report.possible else "red"
    lines = [
        f"[bold]Coverage:[/bold] [{colour}]{report.coverage_percentage:.2f}%[/{colour}]",
        f"[bold]Possible:[/bold] [{colour}]{'yes' if report.possible else 'no'}[/{colour}]",
        f"[bold]Common:[/bold] {', '.join(report.common_features) or '-'}",
        f"[bold]Missing:[/bold] {', '.join(report.missing_features) or '-'}",
    ]
    console.print(
        Panel(
            "\n".join(lines),
            title=f"🔀 {report.from_library} → {report.to_library}",
            border_style=colour,
        )
    )
    return 0 if report.possible else 1


if __name__ == "__main__":
    sys.exit(main())
