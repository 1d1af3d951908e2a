from __future__ import annotations

import asyncio
import time
from pathlib import Path
import typer
from rich.console import Console
from rich.progress import Progress
from rich.table import Table

from config import (
    PREF_DEBUG_DISABLE_MODEL_CACHE,
    PROVIDER_PREF_KEYS,
    SETTINGS,
    cache_bypass_key_for,
)
from dispatch.base import ProviderKind
from dispatch.catalog import ModelCatalogManager
from dispatch.engine import DispatchEngine
from dispatch.errors import CatalogError, TranslationError
from dispatch.factory import build_provider_config, get_available_engines
from dispatch.transport import AiohttpTransport
from utils.lang import display_name
from utils.logging_config import configure_logging
from utils.store import PreferenceStore

app = typer.Typer(add_completion=False)
models_app = typer.Typer(add_completion=False, help="Inspect and refresh provider model catalogs")
cache_app = typer.Typer(add_completion=False, help="Model catalog cache diagnostics")
config_app = typer.Typer(add_completion=False, help="Read and write preferences")
app.add_typer(models_app, name="models")
app.add_typer(cache_app, name="cache")
app.add_typer(config_app, name="config")
console = Console()

SECRET_SUFFIX = "_api_key"


def _run_async(coro):
    return asyncio.run(coro)


def _open_store() -> PreferenceStore:
    return PreferenceStore(SETTINGS.preferences_path)


def _build_engine(store: PreferenceStore) -> DispatchEngine:
    transport = AiohttpTransport(proxy=SETTINGS.translator.proxy_url)
    return DispatchEngine(store, transport, notifier=lambda message: console.log(f"[yellow]{message}[/]"))


def _parse_provider(value: str) -> ProviderKind:
    if value.lower() not in get_available_engines():
        raise typer.BadParameter(f"Unknown provider {value!r}; choose from {', '.join(get_available_engines())}")
    return ProviderKind(value.lower())


def _mask(key: str, value: object) -> str:
    text = "" if value is None else str(value)
    if key.endswith(SECRET_SUFFIX) and text:
        return f"{text[:4]}…{text[-4:]}" if len(text) > 8 else "****"
    return text


@app.command(help="Translate a single string with the configured engine")
def translate(
    text: str = typer.Argument(...),
    source: str = typer.Option(SETTINGS.default_source_lang, "--source", "-s", help="Source language code or 'auto'"),
    target: str = typer.Option(SETTINGS.default_target_lang, "--target", "-t"),
    engine: str | None = typer.Option(None, "--engine", "-e", help="Override the stored default engine"),
) -> None:
    configure_logging(SETTINGS.log_file)
    dispatcher = _build_engine(_open_store())

    async def runner():
        try:
            context = dispatcher.start_session(engine)
            return await dispatcher.translate(text, source, target, context=context)
        finally:
            await dispatcher.close()

    try:
        result = _run_async(runner())
    except TranslationError as e:
        console.print(f"[red]{e.message}[/]")
        raise typer.Exit(code=1)
    console.print(result, markup=False)


@app.command("translate-file", help="Translate a text file, one string per line")
def translate_file(
    input: Path = typer.Argument(..., exists=True, readable=True),
    output: Path = typer.Argument(...),
    source: str = typer.Option(SETTINGS.default_source_lang, "--source", "-s"),
    target: str = typer.Option(SETTINGS.default_target_lang, "--target", "-t"),
    engine: str | None = typer.Option(None, "--engine", "-e"),
) -> None:
    configure_logging(SETTINGS.log_file)
    texts = input.read_text(encoding="utf-8").splitlines()
    dispatcher = _build_engine(_open_store())

    async def runner():
        try:
            context = dispatcher.start_session(engine)
            console.log(f"Using {context.engine} ({context.config.model})")
            with Progress() as progress:
                task_id = progress.add_task("Translating", total=len(texts))

                def progress_callback(done: int, total: int) -> None:
                    progress.update(task_id, completed=done, total=total)

                return await dispatcher.translate_batch(
                    texts,
                    source,
                    target,
                    context=context,
                    progress_cb=progress_callback,
                )
        finally:
            await dispatcher.close()

    try:
        translations = _run_async(runner())
    except TranslationError as e:
        console.print(f"[red]{e.message}[/]")
        raise typer.Exit(code=1)
    output.parent.mkdir(parents=True, exist_ok=True)
    output.write_text("\n".join(translations) + "\n", encoding="utf-8")
    console.print(f"Saved {len(translations)} lines to {output}")


@app.command("quick-test", help="Send a short sample through the configured engine")
def quick_test(
    target: str = typer.Option(SETTINGS.default_target_lang, "--target", "-t"),
    engine: str | None = typer.Option(None, "--engine", "-e"),
) -> None:
    configure_logging(SETTINGS.log_file)
    dispatcher = _build_engine(_open_store())
    sample = "Hello, welcome to the app!"

    async def runner():
        try:
            context = dispatcher.start_session(engine)
            started = time.perf_counter()
            result = await dispatcher.translate(sample, "en", target, context=context)
            return context, result, time.perf_counter() - started
        finally:
            await dispatcher.close()

    try:
        context, result, elapsed = _run_async(runner())
    except TranslationError as e:
        console.print(f"[red]Quick test failed:[/] {e.message}")
        raise typer.Exit(code=1)
    console.print(f"[green]OK[/] {context.engine} / {context.config.model} in {elapsed:.2f}s")
    console.print(f"English → {display_name(target)}: {result}")


@models_app.command("list", help="Show the cached or built-in model list")
def models_list(provider: str = typer.Argument(...)) -> None:
    kind = _parse_provider(provider)
    store = _open_store()
    catalog = ModelCatalogManager(AiohttpTransport(), store)
    current = build_provider_config(store, kind).model

    table = Table(title=f"{get_available_engines()[kind.value]} models")
    table.add_column("Model")
    table.add_column("Name")
    table.add_column("Priority", justify="right")
    table.add_column("")
    for info in catalog.available_models(kind):
        marks = []
        if info.recommended:
            marks.append("recommended")
        if info.id == current:
            marks.append("current")
        table.add_row(info.id, info.display_name, str(info.priority), ", ".join(marks))
    console.print(table)


@models_app.command("refresh", help="Fetch the provider's model list and update the cache")
def models_refresh(provider: str = typer.Argument(...)) -> None:
    configure_logging(SETTINGS.log_file)
    kind = _parse_provider(provider)
    store = _open_store()
    transport = AiohttpTransport(proxy=SETTINGS.translator.proxy_url)
    catalog = ModelCatalogManager(transport, store)
    api_key = build_provider_config(store, kind).api_key

    async def runner():
        try:
            return await catalog.refresh_models(kind, api_key)
        finally:
            await transport.close()

    try:
        models = _run_async(runner())
    except CatalogError as e:
        console.print(f"[red]{e}[/]")
        raise typer.Exit(code=1)
    console.print(f"Cached {len(models)} {kind.value} models")


@cache_app.command("inspect", help="Show freshness of every provider's model cache")
def cache_inspect() -> None:
    store = _open_store()
    catalog = ModelCatalogManager(AiohttpTransport(), store)
    table = Table(title="Model cache")
    table.add_column("Provider")
    table.add_column("Status")
    table.add_column("Models", justify="right")
    table.add_column("Age", justify="right")
    table.add_column("Bypass")
    for kind in ProviderKind:
        diag = catalog.inspect_cache(kind)
        age = f"{diag.age / 60:.0f} min" if diag.age >= 0 else "-"
        table.add_row(kind.value, diag.status, str(diag.model_count), age, "yes" if catalog.cache_bypassed(kind) else "no")
    console.print(table)


@cache_app.command("clear", help="Drop cached model lists")
def cache_clear(provider: str | None = typer.Argument(None, help="Provider to clear; all when omitted")) -> None:
    kind = _parse_provider(provider) if provider else None
    catalog = ModelCatalogManager(AiohttpTransport(), _open_store())
    catalog.clear_cache(kind)
    console.print(f"Cleared model cache for {kind.value if kind else 'all providers'}")


@cache_app.command("toggle-bypass", help="Toggle cache bypass globally or for one provider")
def cache_toggle_bypass(provider: str | None = typer.Argument(None)) -> None:
    store = _open_store()
    key = cache_bypass_key_for(_parse_provider(provider).value) if provider else PREF_DEBUG_DISABLE_MODEL_CACHE
    enabled = not store.get_bool(key)
    store.set(key, enabled)
    console.print(f"{key} = {enabled}")


@config_app.command("set", help="Store a preference value")
def config_set(key: str = typer.Argument(...), value: str = typer.Argument(...)) -> None:
    store = _open_store()
    store.set(key, value)
    console.print(f"{key} = {_mask(key, value)}")


@config_app.command("show", help="List stored preferences (API keys masked)")
def config_show() -> None:
    store = _open_store()
    cache_keys = {keys[3] for keys in PROVIDER_PREF_KEYS.values()}
    table = Table(title=str(store.path))
    table.add_column("Key")
    table.add_column("Value")
    for key, value in sorted(store.snapshot().items()):
        if key in cache_keys:
            value = "<model cache record>"
        table.add_row(key, _mask(key, value))
    console.print(table)


if __name__ == "__main__":
    app()
