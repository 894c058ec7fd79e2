"""Main CLI entry point for the page-sync command.

This module provides the Typer application that operators use to manage
multi-locale pages from the shell: create pages, save edited trees with
cross-locale sync, publish, and inspect translation status.
"""

import json
import logging
import sys
from contextlib import contextmanager
from datetime import datetime
from pathlib import Path
from typing import Iterator, List, Optional

import typer

from src.cli.config import ConfigLoader
from src.cli.errors import CLIError
from src.cli.models import EngineConfig, ExitCode
from src.cli.output import OutputHandler
from src.node_store.errors import IntegrityError, PageSyncError
from src.node_store.node_store import NodeStore
from src.page_service.page_service import PageService
from src.persistence.errors import ConflictError
from src.persistence.file_store import FileGateway
from src.persistence.models import SeoFields
from src.prop_classifier.models import UnknownPropPolicy
from src.prop_classifier.prop_classifier import PropClassifier
from src.sync_engine.models import SyncStrategy
from src.translation_client.auth import Authenticator
from src.translation_client.deepl_client import DeepLTranslator
from src.translation_client.errors import InvalidCredentialsError, TranslationError
from src.tree_differ.tree_differ import TreeDiffer

VERSION = "0.1.0"

app = typer.Typer(
    name="page-sync",
    help="""Cross-locale page composition and sync for a multi-locale CMS.

QUICK START:
  page-sync init --locales en,fi --default-locale en   # Create .page-sync/config.yaml
  page-sync create about "About us"                    # New page (prints its id)
  page-sync export <page_id> en -o about.en.json       # Tree + version token
  page-sync save <page_id> en about.en.json --version v1
  page-sync publish <page_id>""",
    add_completion=False,
    rich_markup_mode=None,
    no_args_is_help=True,
)

logger = logging.getLogger(__name__)


class _State:
    """Options shared by all commands."""

    def __init__(self):
        self.config_path = ConfigLoader.DEFAULT_CONFIG_PATH
        self.verbosity = 0
        self.no_color = False
        self.logdir: Optional[str] = None

    @property
    def output(self) -> OutputHandler:
        return OutputHandler(verbosity=self.verbosity, no_color=self.no_color)


def _configure_logging(verbosity: int, logdir: Optional[str] = None) -> None:
    """Configure logging based on verbosity level.

    Configures only the 'src' namespace logger to avoid affecting third-party
    libraries. The root logger is left unchanged.

    Args:
        verbosity: Verbosity level (0=WARNING, 1=INFO, 2=DEBUG)
        logdir: Optional directory for log files (creates timestamped log file)
    """
    if verbosity == 0:
        level = logging.WARNING
    elif verbosity == 1:
        level = logging.INFO
    else:
        level = logging.DEBUG

    app_logger = logging.getLogger("src")
    app_logger.setLevel(level)
    app_logger.handlers.clear()

    date_format = "%Y-%m-%d %H:%M:%S"
    formatter = logging.Formatter("%(asctime)s [%(levelname)8s] %(message)s", datefmt=date_format)

    console_handler = logging.StreamHandler(sys.stderr)
    console_handler.setLevel(level)
    console_handler.setFormatter(formatter)
    app_logger.addHandler(console_handler)

    if logdir:
        log_path = Path(logdir)
        log_path.mkdir(parents=True, exist_ok=True)

        timestamp = datetime.now().strftime("%Y%m%d_%H%M%S")
        log_file = log_path / f"page-sync_{timestamp}.log"

        file_formatter = logging.Formatter(
            "%(asctime)s - %(name)s - %(levelname)s - %(message)s", datefmt=date_format
        )
        file_handler = logging.FileHandler(log_file, encoding="utf-8")
        file_handler.setLevel(level)
        file_handler.setFormatter(file_formatter)
        app_logger.addHandler(file_handler)

        logger.info(f"Logging to file: {log_file}")


@contextmanager
def _exit_on_error(output: OutputHandler) -> Iterator[None]:
    """Map application errors to exit codes."""
    try:
        yield
    except typer.Exit:
        raise
    except IntegrityError as e:
        logger.error(f"Integrity error: {e}")
        output.error(f"Invalid tree: {e}")
        raise typer.Exit(ExitCode.INTEGRITY_ERROR)
    except ConflictError as e:
        logger.error(f"Version conflict: {e}")
        output.error(f"{e}. Re-export the page and redo the edit on the current version.")
        raise typer.Exit(ExitCode.CONFLICT)
    except TranslationError as e:
        logger.error(f"Translation error: {e}")
        output.error(str(e))
        raise typer.Exit(ExitCode.NETWORK_ERROR)
    except PageSyncError as e:
        logger.error(str(e))
        output.error(str(e))
        raise typer.Exit(ExitCode.GENERAL_ERROR)
    except Exception as e:
        logger.exception("Unexpected error")
        output.error(f"Unexpected error: {e}")
        raise typer.Exit(ExitCode.GENERAL_ERROR)


def _state(ctx: typer.Context) -> _State:
    state = ctx.obj
    if state is None:
        state = ctx.obj = _State()
    return state


def _load_config(state: _State) -> EngineConfig:
    return ConfigLoader.load(state.config_path)


def _build_translator(config: EngineConfig) -> Optional[DeepLTranslator]:
    if not config.translation.enabled:
        return None
    authenticator = Authenticator()
    if not authenticator.is_configured():
        raise InvalidCredentialsError(endpoint=config.translation.api_url or "DeepL")
    return DeepLTranslator(
        authenticator,
        timeout=config.translation.timeout,
        api_url=config.translation.api_url,
    )


def _build_service(config: EngineConfig, with_translator: bool = False) -> PageService:
    """Wire the page service from configuration.

    The translator is only built for commands that may translate, so
    read-only commands work without DeepL credentials.
    """
    node_store = NodeStore()
    return PageService(
        gateway=FileGateway(Path(config.data_dir), node_store=node_store),
        locales=config.locales,
        default_locale=config.default_locale,
        translator=_build_translator(config) if with_translator else None,
        classifier=PropClassifier(unknown_prop_policy=config.unknown_prop_policy),
    )


def _read_tree_file(path: Path):
    node_store = NodeStore()
    try:
        payload = path.read_text(encoding="utf-8")
    except OSError as e:
        raise CLIError(f"Cannot read {path}: {e}")
    return node_store.deserialize(payload)


def _split_locales(value: str) -> List[str]:
    return [locale.strip() for locale in value.split(",") if locale.strip()]


@app.callback(invoke_without_command=True)
def main_callback(
    ctx: typer.Context,
    config: str = typer.Option(
        ConfigLoader.DEFAULT_CONFIG_PATH,
        "--config",
        "-c",
        help="Path to the configuration file",
    ),
    verbosity: int = typer.Option(
        0,
        "--verbosity",
        "-v",
        help="Verbosity level: 0=summary, 1=info, 2=debug",
    ),
    logdir: Optional[str] = typer.Option(
        None,
        "--logdir",
        help="Directory for log files (creates timestamped log file)",
    ),
    no_color: bool = typer.Option(
        False,
        "--no-color",
        help="Disable colored output",
    ),
    version: bool = typer.Option(
        False,
        "--app-version",
        "-V",
        help="Show version and exit",
    ),
) -> None:
    """Cross-locale page composition and sync for a multi-locale CMS."""
    if version:
        typer.echo(f"page-sync version {VERSION}")
        raise typer.Exit()

    state = _state(ctx)
    state.config_path = config
    state.verbosity = verbosity
    state.no_color = no_color
    state.logdir = logdir
    _configure_logging(verbosity, logdir)


@app.command()
def init(
    ctx: typer.Context,
    locales: str = typer.Option(..., "--locales", help="Comma-separated locales, e.g. en,fi"),
    default_locale: Optional[str] = typer.Option(
        None, "--default-locale", help="Locale new pages start in (defaults to the first)"
    ),
    data_dir: str = typer.Option(
        ConfigLoader.DEFAULTS['data_dir'], "--data-dir", help="Page store directory"
    ),
    translation: str = typer.Option(
        "none", "--translation", help="Machine translation provider: deepl or none"
    ),
    reject_unknown: bool = typer.Option(
        False, "--reject-unknown-props", help="Refuse trees with props not in the registry"
    ),
    force: bool = typer.Option(False, "--force", help="Overwrite an existing configuration"),
) -> None:
    """Create the configuration file."""
    state = _state(ctx)
    output = state.output
    with _exit_on_error(output):
        if Path(state.config_path).exists() and not force:
            output.error(f"Configuration already exists at {state.config_path} (use --force)")
            raise typer.Exit(ExitCode.GENERAL_ERROR)

        locale_list = _split_locales(locales)
        config_dict = {
            'locales': locale_list,
            'default_locale': default_locale or (locale_list[0] if locale_list else ""),
            'data_dir': data_dir,
            'unknown_prop_policy': (
                UnknownPropPolicy.REJECT if reject_unknown else UnknownPropPolicy.STRUCTURAL
            ).value,
            'translation': {'provider': translation},
        }
        config = ConfigLoader.from_dict(config_dict)
        ConfigLoader.save(state.config_path, config)
        Path(config.data_dir).mkdir(parents=True, exist_ok=True)

        output.success(f"Configuration written to {state.config_path}")
        output.info(f"  Locales: {', '.join(config.locales)} (default {config.default_locale})")
        output.info(f"  Data directory: {config.data_dir}")
        if config.translation.enabled:
            output.info("  Set DEEPL_API_KEY in the environment or a .env file")


@app.command()
def create(
    ctx: typer.Context,
    slug: str = typer.Argument(..., help="URL slug, unique per site"),
    title: str = typer.Argument(..., help="Page title"),
    locale: Optional[str] = typer.Option(None, "--locale", help="First locale of the page"),
) -> None:
    """Create a page with an empty tree."""
    state = _state(ctx)
    output = state.output
    with _exit_on_error(output):
        service = _build_service(_load_config(state))
        snapshot = service.create_page(slug, title, locale)
        output.success(f"Created page '{slug}'")
        typer.echo(f"page_id: {snapshot.page.page_id}")
        typer.echo(f"version: {snapshot.version}")


@app.command(name="list")
def list_pages(ctx: typer.Context) -> None:
    """List pages with their status."""
    state = _state(ctx)
    output = state.output
    with _exit_on_error(output):
        service = _build_service(_load_config(state))
        pages = service.list_pages()
        if not pages:
            output.warning("No pages")
            return
        for page in pages:
            typer.echo(f"{page.page_id}  {page.status.value:9}  {page.slug}  {page.title}")


@app.command()
def validate(
    ctx: typer.Context,
    file: Path = typer.Argument(..., help="Tree JSON file"),
    strict: bool = typer.Option(
        False, "--strict", help="Also reject props missing from the registry"
    ),
) -> None:
    """Check that a tree file is a valid page tree."""
    state = _state(ctx)
    output = state.output
    with _exit_on_error(output):
        tree = _read_tree_file(file)
        policy = UnknownPropPolicy.REJECT if strict else UnknownPropPolicy.STRUCTURAL
        PropClassifier(unknown_prop_policy=policy).check_tree(tree)
        output.success(f"{file} is valid ({len(tree)} node(s))")


@app.command()
def diff(
    ctx: typer.Context,
    baseline: Path = typer.Argument(..., help="Tree JSON before the edit"),
    edited: Path = typer.Argument(..., help="Tree JSON after the edit"),
) -> None:
    """Show the structural operations between two trees."""
    state = _state(ctx)
    output = state.output
    with _exit_on_error(output):
        result = TreeDiffer().diff(_read_tree_file(baseline), _read_tree_file(edited))
        output.print_diff(result)


@app.command()
def save(
    ctx: typer.Context,
    page_id: str = typer.Argument(..., help="Page id"),
    locale: str = typer.Argument(..., help="Locale the edit was made in"),
    file: Path = typer.Argument(..., help="Edited tree JSON"),
    version_token: str = typer.Option(
        ..., "--version", help="Version token from 'export' or 'status'"
    ),
    strategy: SyncStrategy = typer.Option(
        SyncStrategy.STRUCTURE_ONLY, "--strategy", help="How other locales are updated"
    ),
    seo_title: Optional[str] = typer.Option(None, "--seo-title"),
    seo_description: Optional[str] = typer.Option(None, "--seo-description"),
) -> None:
    """Save an edited tree and propagate it to the other locales."""
    state = _state(ctx)
    output = state.output
    with _exit_on_error(output):
        service = _build_service(_load_config(state), with_translator=True)
        tree = _read_tree_file(file)
        seo = None
        if seo_title is not None or seo_description is not None:
            seo = SeoFields(seo_title=seo_title, seo_description=seo_description)
        with output.spinner("Saving page..."):
            result = service.save_edit(
                page_id, locale, tree, version_token, sync_strategy=strategy, seo=seo
            )
        output.print_save_summary(result)


@app.command()
def sync(
    ctx: typer.Context,
    page_id: str = typer.Argument(..., help="Page id"),
    from_locale: str = typer.Argument(..., help="Locale to copy structure from"),
    to_locale: str = typer.Argument(..., help="Locale to update"),
    version_token: str = typer.Option(..., "--version", help="Current version token"),
    override: bool = typer.Option(
        False, "--override", help="Replace the target's text with the source's"
    ),
    missing_only: bool = typer.Option(
        False, "--missing-only", help="Only fill empty text, leave structure alone"
    ),
) -> None:
    """Resynchronize one locale from another."""
    state = _state(ctx)
    output = state.output
    with _exit_on_error(output):
        if override and missing_only:
            output.error("--override and --missing-only cannot be combined")
            raise typer.Exit(ExitCode.GENERAL_ERROR)
        service = _build_service(_load_config(state), with_translator=True)
        with output.spinner(f"Syncing {to_locale} from {from_locale}..."):
            if missing_only:
                result = service.translate_missing(
                    page_id, from_locale, to_locale, version_token
                )
            else:
                result = service.sync_language(
                    page_id, from_locale, to_locale, version_token,
                    preserve_text=not override,
                )
        output.print_save_summary(result)


@app.command()
def publish(ctx: typer.Context, page_id: str = typer.Argument(..., help="Page id")) -> None:
    """Publish the current content of a page."""
    state = _state(ctx)
    output = state.output
    with _exit_on_error(output):
        live = _build_service(_load_config(state)).publish(page_id)
        output.success(
            f"Published {page_id} ({', '.join(sorted(live.trees))}) from {live.source_version}"
        )


@app.command()
def unpublish(ctx: typer.Context, page_id: str = typer.Argument(..., help="Page id")) -> None:
    """Take a published page offline."""
    state = _state(ctx)
    output = state.output
    with _exit_on_error(output):
        _build_service(_load_config(state)).unpublish(page_id)
        output.success(f"Unpublished {page_id}")


@app.command()
def status(ctx: typer.Context, page_id: str = typer.Argument(..., help="Page id")) -> None:
    """Show translation status and the current version token."""
    state = _state(ctx)
    output = state.output
    with _exit_on_error(output):
        service = _build_service(_load_config(state))
        page = service.get_page(page_id)
        snapshot = service.gateway.read_snapshot(page_id)
        typer.echo(f"{page.slug} ({page.status.value}), version {snapshot.version}")
        output.print_translation_report(service.get_translation_status(page_id))


@app.command()
def review(
    ctx: typer.Context,
    page_id: str = typer.Argument(..., help="Page id"),
    node_id: str = typer.Argument(..., help="Reviewed node"),
    locale: str = typer.Argument(..., help="Reviewed locale"),
) -> None:
    """Mark an auto-translated node as reviewed."""
    state = _state(ctx)
    output = state.output
    with _exit_on_error(output):
        version = _build_service(_load_config(state)).mark_reviewed(page_id, node_id, locale)
        output.success(f"Marked {node_id} reviewed in {locale} (version {version})")


@app.command(name="delete-locale")
def delete_locale(
    ctx: typer.Context,
    page_id: str = typer.Argument(..., help="Page id"),
    locale: str = typer.Argument(..., help="Locale to delete"),
    version_token: str = typer.Option(..., "--version", help="Current version token"),
) -> None:
    """Delete one locale's content of a page."""
    state = _state(ctx)
    output = state.output
    with _exit_on_error(output):
        version = _build_service(_load_config(state)).delete_locale(
            page_id, locale, version_token
        )
        output.success(f"Deleted {locale} from {page_id} (version {version})")


@app.command()
def export(
    ctx: typer.Context,
    page_id: str = typer.Argument(..., help="Page id"),
    locale: str = typer.Argument(..., help="Locale to export"),
    out: Optional[Path] = typer.Option(None, "--output", "-o", help="Write to file"),
    published: bool = typer.Option(
        False, "--published", help="Export the live snapshot instead of the draft"
    ),
) -> None:
    """Write a locale's tree as JSON (the version token goes to stderr)."""
    state = _state(ctx)
    output = state.output
    with _exit_on_error(output):
        service = _build_service(_load_config(state))
        if published:
            page = service.get_page(page_id)
            tree = service.get_published_tree(page.slug, locale)
            version = None
        else:
            editor = service.get_editor_state(page_id, locale)
            tree = editor.tree
            version = editor.version
            if not editor.exists:
                output.warning(f"{page_id} has no '{locale}' content yet, exporting an empty tree")

        payload = json.dumps(service.node_store.to_wire(tree), indent=2, ensure_ascii=False)
        if out is not None:
            out.write_text(payload + "\n", encoding="utf-8")
            output.success(f"Wrote {out}")
        else:
            typer.echo(payload)
        if version is not None:
            typer.echo(f"version: {version}", err=True)


def main() -> None:
    """Main entry point for the CLI application.

    This function is called when the module is executed directly or
    when the console script is invoked.
    """
    app()


# Allow running as: python -m src.cli.main
if __name__ == "__main__":
    main()
