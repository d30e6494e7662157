from __future__ import annotations
import asyncio
import json
import signal
from contextlib import contextmanager
from pathlib import Path
from typing import Any, Dict, List, Optional

import typer
from keyring.errors import KeyringError
from rich.console import Console

from .bootstrap import build_app
from .config_loader import ConfigError
from .core.batch import StopFlag
from .core.errors import ErrorKind, ProviderError, format_error
from .core.models import GeneratedArtifact
from .resilience.classifier import ClassifiedError
from .secrets.sources import KeyringKeyStore
from .utils.images import load_image, save_artifact
from .tools.prompts import PRODUCT_CATEGORIES, lookbook_shot_list

app = typer.Typer(add_completion=False, help="Creative-studio image tools backed by Gemini.")
key_app = typer.Typer(add_completion=False, help="Manage your personal Gemini API key.")
app.add_typer(key_app, name="key")

console = Console()


def _key_store():
    return KeyringKeyStore()


def _notify_retry(attempt: int, classified: ClassifiedError, delay: float) -> None:
    what = "waiting for quota" if classified.kind is ErrorKind.TRANSIENT_QUOTA else "server busy"
    console.print(f"[yellow]Still working ({what}), retry {attempt + 1} in {delay:.1f}s...[/yellow]")


def _ctx(ctx: typer.Context) -> Dict[str, Any]:
    obj = ctx.ensure_object(dict)
    if "app" not in obj:
        try:
            obj["app"] = build_app(obj["config"], key_store=_key_store(), on_retry=_notify_retry,
                                   setup_logging=True)
        except (ConfigError, FileNotFoundError) as e:
            console.print(f"[red]config:[/red] {e}")
            raise typer.Exit(2)
    return obj["app"]


def _run(coro):
    try:
        return asyncio.run(coro)
    except Exception as e:
        # upstream SDK errors the classifier marks fatal arrive unwrapped
        console.print(f"[red]{format_error(e)}[/red]")
        raise typer.Exit(1)


def _load(path: Path):
    try:
        return load_image(path)
    except ProviderError as e:
        console.print(f"[red]{e}[/red]")
        raise typer.Exit(1)


@contextmanager
def _stop_on_interrupt(stop: StopFlag):
    """First Ctrl-C stops the batch after the current shot; a second one aborts."""
    def handler(signum, frame):
        console.print("[yellow]Stopping after the current shot (Ctrl-C again to abort)...[/yellow]")
        stop.set()
        signal.signal(signal.SIGINT, previous)

    previous = signal.signal(signal.SIGINT, handler)
    try:
        yield stop
    finally:
        signal.signal(signal.SIGINT, previous)


def _write(artifact: GeneratedArtifact, out: Path) -> None:
    path = save_artifact(artifact, out)
    console.print(f"Saved {path}")


@app.callback()
def main(ctx: typer.Context, config: Path = typer.Option(Path("config/default.yaml"), "--config", "-c")):
    ctx.ensure_object(dict)["config"] = config


# ----- key management -----

@key_app.command("set")
def key_set(value: str = typer.Option(..., prompt="Paste your Gemini API key", hide_input=True)):
    try:
        _key_store().save(value)
    except KeyringError as e:
        console.print(f"[red]Could not store the key in the system keyring: {e}[/red]")
        raise typer.Exit(1)
    except ProviderError as e:
        console.print(f"[red]{e}[/red]")
        raise typer.Exit(1)
    console.print("API key saved.")


@key_app.command("clear")
def key_clear():
    try:
        _key_store().clear()
    except KeyringError as e:
        console.print(f"[red]Could not remove the key from the system keyring: {e}[/red]")
        raise typer.Exit(1)
    console.print("API key removed; the default key (if any) will be used.")


@key_app.command("status")
def key_status(ctx: typer.Context):
    source = _ctx(ctx)["credentials"].source()
    labels = {"user": "personal key", "default": "default (environment) key", None: "no key configured"}
    console.print(f"Using: {labels[source]}")


# ----- image tools -----

@app.command("face-safe")
def face_safe(ctx: typer.Context, face: Path, prompt: str, out: Path = Path("face-safe"),
              negative: str = "", face_lock: int = typer.Option(80, min=0, max=100)):
    studio = _ctx(ctx)["studio"]
    _write(_run(studio.face_safe(_load(face), prompt, negative, face_lock)), out)


@app.command("ootd")
def ootd(ctx: typer.Context, person: Path, out: Path = Path("outfit")):
    """Extract the outfit worn in a photo."""
    _write(_run(_ctx(ctx)["studio"].extract_outfit(_load(person))), out)


@app.command("bg-swap")
def bg_swap(ctx: typer.Context, subject: Path, background: Path, out: Path = Path("bg-swap")):
    studio = _ctx(ctx)["studio"]
    _write(_run(studio.swap_background(_load(subject), _load(background))), out)


@app.command("restore")
def restore(ctx: typer.Context, photo: Path, out: Path = Path("restored")):
    _write(_run(_ctx(ctx)["studio"].restore_photo(_load(photo))), out)


@app.command("inpaint")
def inpaint(ctx: typer.Context, source: Path, mask: Path, prompt: str, out: Path = Path("inpaint")):
    studio = _ctx(ctx)["studio"]
    _write(_run(studio.inpaint(_load(source), _load(mask), prompt)), out)


@app.command("id-photo")
def id_photo(ctx: typer.Context, portrait: Path, background: str = "white", attire: bool = False,
             out: Path = Path("id-photo")):
    studio = _ctx(ctx)["studio"]
    _write(_run(studio.id_photo(_load(portrait), background, attire)), out)


@app.command("travel")
def travel(ctx: typer.Context, subject: Path, location: str, style: str = "photorealistic",
           time_of_day: str = "golden hour", out: Path = Path("travel")):
    studio = _ctx(ctx)["studio"]
    _write(_run(studio.travel_photo(_load(subject), location, style, time_of_day)), out)


@app.command("try-on")
def try_on(ctx: typer.Context, model: Path, product: Path, category: str = "clothing",
           out: Path = Path("try-on")):
    if category not in PRODUCT_CATEGORIES:
        raise typer.BadParameter(f"category must be one of {', '.join(PRODUCT_CATEGORIES)}")
    studio = _ctx(ctx)["studio"]
    _write(_run(studio.try_on(_load(model), _load(product), category)), out)


@app.command("lookbook")
def lookbook(
    ctx: typer.Context,
    product: Path,
    angle: List[str] = typer.Option([], "--angle", "-a"),
    detail: List[str] = typer.Option([], "--detail", help="Functional detail to close in on"),
    texture_macro: bool = False,
    brand_detail: bool = False,
    detail_circle: bool = False,
    variations: bool = False,
    background: Optional[Path] = None,
    background_prompt: str = "",
    model: Optional[Path] = None,
    model_prompt: str = "",
    product_name: str = "",
    features: str = "",
    consult: bool = typer.Option(False, help="Ask for expert guidance first"),
    out_dir: Path = Path("lookbook"),
):
    """Generate a paced series of lookbook shots for one product."""
    studio = _ctx(ctx)["studio"]
    shots = lookbook_shot_list(angle, texture_macro=texture_macro, brand_detail=brand_detail,
                               detail_circle=detail_circle, functional_details=detail, variations=variations)
    if not shots:
        raise typer.BadParameter("select at least one shot")
    product_img = _load(product)
    consultation = _run(studio.consult_lookbook(product_img, features)) if consult else None

    def progress(i: int, total: int, label: str) -> None:
        console.print(f"Generating ({i + 1}/{total}): {label}...")

    background_img = _load(background) if background else None
    model_img = _load(model) if model else None
    with _stop_on_interrupt(StopFlag()) as stop:
        result = _run(studio.lookbook_batch(
            product_img, shots, consultation=consultation, on_progress=progress, stop=stop,
            background=background_img, background_prompt=background_prompt,
            model=model_img, model_prompt=model_prompt,
            product_name=product_name, product_features=features,
        ))
    for n, outcome in enumerate(result.outcomes, start=1):
        if outcome.ok:
            _write(outcome.artifact, out_dir / f"{n:02d}")
        else:
            console.print(f"[red]{outcome.label}: {outcome.error}[/red]")
    if result.halted:
        console.print(f"[red]Stopped early: {result.halt_reason}[/red]")
        raise typer.Exit(1)
    if result.stopped:
        console.print(f"Stopped by user after {len(result.outcomes)} of {len(shots)} shots.")


# ----- text tools -----

@app.command("describe")
def describe(ctx: typer.Context, image: Path):
    """Reverse-engineer a text-to-image prompt from a picture."""
    analysis = _run(_ctx(ctx)["studio"].describe_image(_load(image)))
    console.print_json(analysis.model_dump_json())


@app.command("prompts")
def prompt_maker(ctx: typer.Context, brief: str):
    for p in _run(_ctx(ctx)["studio"].prompts_from_brief(brief)):
        console.print(f"- {p}")


@app.command("consult")
def consult(ctx: typer.Context, product: Path, info: str = ""):
    result = _run(_ctx(ctx)["studio"].consult_lookbook(_load(product), info))
    console.print_json(json.dumps(result.model_dump()))


@app.command("serve")
def serve(ctx: typer.Context, host: str = "127.0.0.1", port: int = 8000):
    from .web.app import run
    run(config=ctx.ensure_object(dict)["config"], host=host, port=port)
