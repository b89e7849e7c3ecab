"""CLI for the Skin Matcher recommendation engine.

Provides command-line access to the quiz, one-shot recommendations,
per-rule score explanations and catalog validation.
"""

import asyncio
import json
import logging
import sys
from pathlib import Path
from typing import Optional

import click
from rich.console import Console
from rich.logging import RichHandler
from rich.markup import escape
from rich.panel import Panel
from rich.table import Table

from .cache import ResultCache
from .catalog import (
    CatalogProvider,
    HttpCatalogProvider,
    JsonFileCatalogProvider,
    load_catalog_file,
    validate_catalog,
)
from .config import (
    find_config_file,
    get_config,
    load_config,
    save_default_config,
)
from .engine import RecommendationEngine
from .quiz import QuizPhase, QuizSession, SubmissionError
from .ruleset import save_ruleset
from .schema import QuestionnaireAnswers, QuizStep, RecommendationResult, StepKind
from .scorer import ProductScorer

console = Console()


def _configure_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(message)s",
        handlers=[RichHandler(console=Console(stderr=True), show_path=False)],
    )


@click.group()
@click.version_option(version="1.0.0", prog_name="skin-matcher")
@click.option(
    "--config", "config_path",
    type=click.Path(exists=True),
    help="Path to a skin-matcher YAML config (default: auto-discovered)"
)
@click.option(
    "--verbose", "-v",
    is_flag=True,
    help="Show debug logging"
)
def main(config_path: Optional[str], verbose: bool):
    """Skin Matcher Recommendation Engine.

    Scores catalog products against a skin profile questionnaire and
    returns a short, category-diverse list of recommendations with
    reasons.
    """
    _configure_logging(verbose)
    path = Path(config_path) if config_path else find_config_file()
    if path:
        load_config(path)


def result_to_json(result: RecommendationResult) -> str:
    """Serialize a result with the add-to-cart payload of each recommendation."""
    data = result.model_dump(mode="json")
    data["cart"] = result.cart_payloads()
    return json.dumps(data, indent=2)


def answer_options(func):
    """Shared questionnaire options for non-interactive commands."""
    options = [
        click.option("--age", required=True, help="Age bracket: 18-25, 26-35, 36-45, 46-55, 55+"),
        click.option("--gender", default="undisclosed", show_default=True,
                     help="female, male, non_binary, undisclosed"),
        click.option("--skin-type", required=True,
                     help="oily, dry, combination, sensitive, normal"),
        click.option("--concern", "concerns", multiple=True, required=True,
                     help="Skin concern (repeatable): acne, aging, dark_spots, dryness, "
                          "sensitivity, dullness, pores, texture"),
        click.option("--budget", required=True, help="budget, mid_range, premium"),
        click.option("--lifestyle", required=True, help="busy, minimalist, luxury, natural"),
    ]
    for option in reversed(options):
        func = option(func)
    return func


def build_answers(age, gender, skin_type, concerns, budget, lifestyle) -> QuestionnaireAnswers:
    return QuestionnaireAnswers(
        age_bracket=age,
        gender=gender,
        skin_type=skin_type,
        concerns=list(concerns),
        budget_tier=budget,
        lifestyle=lifestyle,
    )


def make_provider(catalog: Optional[str], catalog_url: Optional[str]) -> CatalogProvider:
    if catalog_url:
        return HttpCatalogProvider(catalog_url)
    if catalog:
        return JsonFileCatalogProvider(catalog)
    raise click.UsageError("Specify --catalog or --catalog-url")


@main.command("quiz")
@click.option(
    "--catalog", "-c",
    type=click.Path(exists=True),
    help="Path to a catalog JSON file"
)
@click.option(
    "--catalog-url",
    help="HTTPS URL of a catalog JSON document"
)
@click.option(
    "--session", "session_id",
    help="Session id; when given the result is cached under this id"
)
@click.option(
    "--json-output", "-j",
    is_flag=True,
    help="Output raw JSON instead of formatted text"
)
def quiz_cmd(
    catalog: Optional[str],
    catalog_url: Optional[str],
    session_id: Optional[str],
    json_output: bool,
):
    """Take the skin matcher quiz interactively.

    Examples:
        skin-matcher quiz -c catalog.json
        skin-matcher quiz --catalog-url https://shop.example.com/catalog.json --session abc123
    """
    config = get_config()
    provider = make_provider(catalog, catalog_url)
    cache = ResultCache(config.cache.directory) if session_id else None
    session = QuizSession(provider, cache=cache, session_id=session_id)

    try:
        run_quiz(session)
    except click.Abort:
        console.print("\n[yellow]Quiz cancelled.[/yellow]")
        sys.exit(1)

    if json_output:
        click.echo(result_to_json(session.result))
    else:
        display_result(session.result, config.selection.reasons_shown)


def run_quiz(session: QuizSession) -> RecommendationResult:
    """Drive a quiz session from the terminal until results are available."""
    while session.phase == QuizPhase.STEP:
        step = session.current_step
        console.print(
            f"\n[bold]Step {session.step_index + 1} of {len(session.steps)}[/bold] "
            f"[dim]({session.progress:.0f}% complete)[/dim]"
        )
        session.answer(prompt_for_step(step, session.current_answer()))

        if not session.is_last_step:
            session.next()
            continue

        while True:
            try:
                with console.status("Analyzing your skin profile..."):
                    return asyncio.run(session.submit())
            except SubmissionError as e:
                console.print(f"[red]{escape(str(e))}[/red]")
                if not click.confirm("Try again?", default=True):
                    raise click.Abort()

    return session.result


def prompt_for_step(step: QuizStep, current) -> object:
    """Show one quiz step and read the user's choice(s)."""
    console.print(f"[bold cyan]{step.title}[/bold cyan]")
    choice_map = {str(idx): opt.value for idx, opt in enumerate(step.options, 1)}
    for idx, opt in enumerate(step.options, 1):
        desc = f" - {opt.description}" if opt.description else ""
        console.print(f"   [bold]{idx}[/bold]. {opt.label}{desc}")

    if step.kind == StepKind.MULTIPLE:
        while True:
            raw = click.prompt(
                f"   Select one or more [1-{len(step.options)}], comma separated",
                default=",".join(k for k, v in choice_map.items() if v in (current or [])) or None,
            )
            picks = [p.strip() for p in raw.split(",") if p.strip()]
            if picks and all(p in choice_map for p in picks):
                return [choice_map[p] for p in picks]
            console.print("   [yellow]Please choose at least one listed number.[/yellow]")

    default_num = next((k for k, v in choice_map.items() if v == current), None)
    raw = click.prompt(
        f"   Select [1-{len(step.options)}]",
        type=click.Choice(list(choice_map)),
        default=default_num,
        show_choices=False,
    )
    return choice_map[raw]


@main.command("recommend")
@click.option(
    "--catalog", "-c",
    type=click.Path(exists=True),
    help="Path to a catalog JSON file"
)
@click.option(
    "--catalog-url",
    help="HTTPS URL of a catalog JSON document"
)
@answer_options
@click.option(
    "--count", "-n",
    type=int,
    help="Number of products to recommend (default from config)"
)
@click.option(
    "--out", "-o",
    type=click.Path(),
    help="Also write the JSON result to this file"
)
@click.option(
    "--json-output", "-j",
    is_flag=True,
    help="Output raw JSON instead of formatted text"
)
def recommend_cmd(
    catalog: Optional[str],
    catalog_url: Optional[str],
    age: str,
    gender: str,
    skin_type: str,
    concerns: tuple,
    budget: str,
    lifestyle: str,
    count: Optional[int],
    out: Optional[str],
    json_output: bool,
):
    """Recommend products for answers given as options.

    Examples:
        skin-matcher recommend -c catalog.json --age 36-45 --skin-type dry \\
            --concern dryness --budget mid_range --lifestyle natural
    """
    provider = make_provider(catalog, catalog_url)
    try:
        answers = build_answers(age, gender, skin_type, concerns, budget, lifestyle)
        engine = RecommendationEngine()
        result = asyncio.run(engine.recommend_from(provider, answers, count))
    except Exception as e:
        console.print(f"[red]Error: {escape(str(e))}[/red]")
        sys.exit(1)

    if json_output:
        click.echo(result_to_json(result))
    else:
        display_result(result, get_config().selection.reasons_shown)

    if out:
        Path(out).write_text(result_to_json(result), encoding="utf-8")
        if not json_output:
            console.print(f"\n[green]Results saved to {out}[/green]")


@main.command("explain")
@click.option(
    "--catalog", "-c",
    required=True,
    type=click.Path(exists=True),
    help="Path to a catalog JSON file"
)
@click.option(
    "--product-id", "-p",
    required=True,
    help="Id of the product to explain"
)
@answer_options
def explain_cmd(
    catalog: str,
    product_id: str,
    age: str,
    gender: str,
    skin_type: str,
    concerns: tuple,
    budget: str,
    lifestyle: str,
):
    """Show which rules fired for one product."""
    try:
        answers = build_answers(age, gender, skin_type, concerns, budget, lifestyle)
        products = load_catalog_file(catalog)
    except Exception as e:
        console.print(f"[red]Error: {escape(str(e))}[/red]")
        sys.exit(1)

    product = next((p for p in products if p.id == product_id), None)
    if product is None:
        console.print(f"[red]Product not found: {escape(product_id)}[/red]")
        sys.exit(1)

    outcomes = ProductScorer.from_config().explain(product, answers)

    table = Table(
        title=escape(f"{product.title} ({product.category})"),
        show_header=True,
        header_style="bold",
    )
    table.add_column("Rule", style="cyan", no_wrap=True)
    table.add_column("Points", justify="right")
    table.add_column("Reason")
    for outcome in outcomes:
        table.add_row(outcome.rule, f"+{outcome.increment}", escape(outcome.reason or ""))
    console.print(table)
    console.print(f"[bold]Total score:[/bold] {sum(o.increment for o in outcomes)}")


@main.command("validate")
@click.option(
    "--catalog", "-c",
    required=True,
    type=click.Path(),
    help="Path to a catalog JSON file"
)
def validate_cmd(catalog: str):
    """Validate a catalog file.

    Examples:
        skin-matcher validate -c catalog.json
    """
    is_valid, issues = validate_catalog(catalog)
    if is_valid:
        console.print(f"[green]✓ Catalog valid: {catalog}[/green]")
    else:
        console.print(f"[red]✗ Catalog invalid: {catalog}[/red]")
    for issue in issues:
        console.print(f"  - {issue}")

    sys.exit(0 if is_valid else 1)


@main.command("init-config")
@click.option(
    "--out", "-o",
    required=True,
    type=click.Path(),
    help="Where to write the YAML file"
)
@click.option(
    "--ruleset",
    is_flag=True,
    help="Write the default keyword ruleset instead of the engine config"
)
def init_config_cmd(out: str, ruleset: bool):
    """Write a default configuration (or ruleset) YAML file."""
    path = Path(out)
    if ruleset:
        save_ruleset(path)
    else:
        save_default_config(path)
    console.print(f"[green]Wrote {path}[/green]")


def display_result(result: RecommendationResult, reasons_shown: int = 3):
    """Display a recommendation result in formatted text."""
    answers = result.answers
    concerns = ", ".join(c.value for c in answers.concerns)
    console.print(Panel(
        f"Age Group: [cyan]{answers.age_bracket.value}[/cyan]\n"
        f"Skin Type: [cyan]{answers.skin_type.value}[/cyan]\n"
        f"Concerns: [cyan]{concerns}[/cyan]\n"
        f"Budget: [cyan]{answers.budget_tier.value}[/cyan]  "
        f"Lifestyle: [cyan]{answers.lifestyle.value}[/cyan]",
        title="Your Skin Analysis",
    ))

    if not result.recommendations:
        console.print("[yellow]No products available to recommend.[/yellow]")
        return

    console.print("\n[bold]Your Perfect Skincare Match:[/bold]\n")
    for i, rec in enumerate(result.recommendations, 1):
        product = rec.product
        console.print(
            f"  [bold cyan]{i}. {escape(product.title or '')}[/bold cyan] "
            f"[dim]{escape(product.category)}[/dim]  £{product.price:.2f}  "
            f"[bold]score {rec.score}[/bold]"
        )
        for reason in rec.top_reasons(reasons_shown):
            console.print(f"     [green]•[/green] {escape(reason)}")
        console.print()

    if result.used_catalog_fallback:
        console.print("[dim]No strong matches found; showing general picks from the catalog.[/dim]")
    elif result.used_relaxed_threshold:
        console.print("[dim]Few strong matches found; includes looser matches.[/dim]")


if __name__ == "__main__":
    main()
