from __future__ import annotations
import json, os
from enum import Enum
from typing import List, Optional
import typer
from pydantic import TypeAdapter
from rich.table import Table
from .config import AppConfig, load_config
from .errors import QualtheoryError
from .logging import console, setup_logging
from .methodology import (
    get_quality_criteria,
    get_recommended_tools,
    get_stage_prompt,
    is_tool_applicable,
    list_methodologies,
    load_methodology,
    validate_methodology_structure,
)
from .models.schemas import (
    CodebookRefinementRequest,
    GroundedTheoryRequest,
    InitialCode,
    Memo,
    QualityAssessment,
    ThemeExtractionRequest,
)
from .pipeline.codebook_builder import refine_codebook
from .pipeline.codebook_quality import validate_codebook
from .pipeline.diagrams import concept_map, paradigm_diagram
from .pipeline.report import emit_markdown
from .pipeline.report_html import emit_html
from .pipeline.selective_coder import build_grounded_theory_llm
from .pipeline.theme_extractor import DATA_POINTS_PER_SOURCE, extract_themes
from .pipeline.theme_quality import is_saturated, validate_themes
from .pipeline.theory_builder import build_grounded_theory
from .pipeline.theory_quality import validate_grounded_theory
from .providers.base import make_provider
from .storage import ProjectStore

app = typer.Typer(help="qualtheory: codebooks, themes and grounded theory for qualitative research")


class Mode(str, Enum):
    inductive = "inductive"
    deductive = "deductive"
    hybrid = "hybrid"


class Depth(str, Enum):
    surface = "surface"
    deep = "deep"
    latent = "latent"


class ParadigmChoice(str, Enum):
    constructivist = "constructivist"
    objectivist = "objectivist"
    critical = "critical"


class Stage(str, Enum):
    codebook = "codebook"
    themes = "themes"
    theory = "theory"


def _setup(config_path: Optional[str]) -> AppConfig:
    conf = load_config(config_path)
    setup_logging(conf.output.log_level, conf.output.log_file)
    return conf

def _store(conf: AppConfig) -> ProjectStore:
    return ProjectStore(conf.storage.projects_dir)

def _read_json(path: str):
    with open(path, "r", encoding="utf-8") as f:
        return json.load(f)

def _stage_header(name: str):
    console.rule(f"[info]{name}[/info]")

def _fail(exc: Exception):
    console.print(f"[err]Error:[/err] {exc}", markup=True)
    raise typer.Exit(code=1)

def _print_assessment(title: str, qa: QualityAssessment):
    table = Table(title=f"{title} quality: {qa.overall_quality * 100:.0f}%")
    table.add_column("Criterion")
    table.add_column("Score")
    for k, v in qa.criteria_scores.items():
        table.add_row(k, f"{v:.2f}")
    console.print(table)
    for s in qa.strengths:
        console.print(f"[ok]+[/ok] {s}")
    for w in qa.weaknesses:
        console.print(f"[warn]-[/warn] {w}")
    if not qa.passes_quality_threshold:
        console.print(f"[warn]Warning:[/warn] {title} quality is below threshold")
        for r in qa.recommendations:
            console.print(f"  * {r}")

def _print_warnings(warnings: List[str]):
    for w in warnings:
        console.print(f"[warn]Warning:[/warn] {w}")

def _usage(provider):
    u = provider.total_usage()
    console.print(
        f"[info]tokens[/info] in={u['input_tokens']} out={u['output_tokens']} "
        f"est. cost=${provider.estimated_cost()}"
    )


@app.command("refine-codebook")
def refine_codebook_cmd(
    project: str = typer.Option(..., "-p", "--project", help="Project name"),
    input_path: Optional[str] = typer.Option(None, "-i", help="Initial codes JSON (defaults to the stored project file)"),
    config_path: Optional[str] = typer.Option(None, "-c", help="Config file (YAML or JSON)"),
    methodology: Optional[str] = typer.Option(None, help="Methodology id, e.g. grounded-theory-charmaz"),
    merge_similar: bool = typer.Option(True, "--merge/--no-merge"),
    min_frequency: Optional[int] = typer.Option(None, min=1),
    preserve_in_vivo: bool = typer.Option(True, "--in-vivo/--no-in-vivo"),
):
    conf = _setup(config_path)
    store = _store(conf)
    try:
        request = CodebookRefinementRequest(
            project_name=project, methodology=methodology, merge_similar=merge_similar,
            min_frequency=min_frequency, preserve_in_vivo=preserve_in_vivo,
        )
        if input_path:
            initial = TypeAdapter(List[InitialCode]).validate_python(_read_json(input_path))
            store.save_initial_codes(project, initial)
        else:
            initial = store.load_initial_codes(project)
        meth = load_methodology(methodology, conf.methodology.methodologies_dir) if methodology else None
        provider = make_provider(conf.provider)
        _stage_header("Codebook Refinement")
        result = refine_codebook(provider, request, initial, meth)
        store.save_codebook(project, result.codebook)
    except (QualtheoryError, OSError, ValueError, RuntimeError) as exc:
        _fail(exc)
    s = result.summary
    console.print(f"[ok]Codebook refined:[/ok] {s.initial_code_count} -> {s.final_code_count} codes, "
                  f"{s.merged_code_count} merges, {s.hierarchy_levels} hierarchy levels")
    _print_assessment("Codebook", result.assessment)
    _print_warnings(result.warnings)
    _usage(provider)


@app.command("extract-themes")
def extract_themes_cmd(
    project: str = typer.Option(..., "-p", "--project"),
    raw_data_path: str = typer.Option(..., "--raw-data", help="JSON list of source documents / participants"),
    config_path: Optional[str] = typer.Option(None, "-c"),
    mode: Mode = typer.Option(Mode.inductive),
    depth: Depth = typer.Option(Depth.deep),
    research_question: Optional[str] = typer.Option(None, "-q", "--research-question"),
    framework: Optional[str] = typer.Option(None, "--framework"),
    min_prevalence: Optional[float] = typer.Option(None, min=0.0, max=1.0),
):
    conf = _setup(config_path)
    store = _store(conf)
    try:
        request = ThemeExtractionRequest(
            project_name=project, mode=mode.value, depth=depth.value,
            research_question=research_question, theoretical_framework=framework,
            min_prevalence=min_prevalence,
        )
        codebook = store.load_codebook(project)
        raw_data = _read_json(raw_data_path)
        if not isinstance(raw_data, list):
            raise ValueError("--raw-data must contain a JSON list")
        meth_id = codebook.methodology or conf.methodology.default_id
        meth = load_methodology(meth_id, conf.methodology.methodologies_dir) if meth_id else None
        provider = make_provider(conf.provider)
        _stage_header("Theme Extraction")
        result = extract_themes(provider, request, codebook, raw_data, meth)
        store.save_themes(project, result.themes)
    except (QualtheoryError, OSError, ValueError, RuntimeError) as exc:
        _fail(exc)
    table = Table(title=f"Themes ({len(result.themes)})")
    table.add_column("Theme")
    table.add_column("Codes")
    table.add_column("Quotes")
    table.add_column("Prevalence")
    for t in result.themes:
        table.add_row(t.name, str(len(t.related_codes)), str(len(t.supporting_quotes)), f"{t.prevalence.fraction:.2f}")
    console.print(table)
    _print_assessment("Themes", result.assessment)
    _print_warnings(result.warnings)
    _usage(provider)


@app.command("build-theory")
def build_theory_cmd(
    project: str = typer.Option(..., "-p", "--project"),
    config_path: Optional[str] = typer.Option(None, "-c"),
    paradigm: ParadigmChoice = typer.Option(ParadigmChoice.constructivist),
    research_question: str = typer.Option("", "-q", "--research-question"),
    use_llm: bool = typer.Option(False, "--llm/--deterministic", help="Draft the theory with the generative service"),
    sensitivity: List[str] = typer.Option([], "--sensitivity", help="Existing theoretical concept (repeatable)"),
    memos_path: Optional[str] = typer.Option(None, "--memos", help="JSON list of memos"),
    focus_on_process: bool = typer.Option(True, "--process/--no-process"),
):
    conf = _setup(config_path)
    store = _store(conf)
    try:
        themes = store.load_themes(project)
        if use_llm:
            request = GroundedTheoryRequest(
                project_name=project, paradigm=paradigm.value, research_question=research_question,
                theoretical_sensitivity=sensitivity, focus_on_process=focus_on_process,
            )
            memos = TypeAdapter(List[Memo]).validate_python(_read_json(memos_path)) if memos_path else []
            meth = load_methodology("grounded-theory-charmaz", conf.methodology.methodologies_dir)
            provider = make_provider(conf.provider)
            _stage_header("Grounded Theory (generative)")
            result = build_grounded_theory_llm(provider, request, themes, memos, methodology=meth)
            theory, assessment, warnings = result.grounded_theory, result.assessment, result.warnings
        else:
            _stage_header("Grounded Theory (deterministic)")
            theory = build_grounded_theory(themes, research_question, paradigm.value, project)
            assessment = theory.quality
            warnings = []
        store.save_theory(project, theory)
    except (QualtheoryError, OSError, ValueError, RuntimeError) as exc:
        _fail(exc)
    console.print(f"[ok]{theory.title}[/ok] (core category: {theory.core_category})")
    console.print(paradigm_diagram(theory.paradigm_model), markup=False)
    console.print(theory.storyline, markup=False)
    for i, p in enumerate(theory.theoretical_propositions, start=1):
        console.print(f"{i}. {p}", markup=False)
    _print_assessment("Theory", assessment)
    _print_warnings(warnings)
    if use_llm:
        _usage(provider)


@app.command()
def assess(
    project: str = typer.Option(..., "-p", "--project"),
    stage: Stage = typer.Option(..., "--stage"),
    config_path: Optional[str] = typer.Option(None, "-c"),
    data_points: Optional[int] = typer.Option(None, min=1, help="Expected data points for theme coverage"),
):
    conf = _setup(config_path)
    store = _store(conf)
    try:
        if stage is Stage.codebook:
            _print_assessment("Codebook", validate_codebook(store.load_codebook(project)))
        elif stage is Stage.themes:
            themes = store.load_themes(project)
            expected = data_points or max((t.prevalence.total_participants for t in themes), default=0) * DATA_POINTS_PER_SOURCE
            _print_assessment("Themes", validate_themes(themes, expected))
            console.print(f"[info]saturation[/info]: {'yes' if is_saturated(themes) else 'no'}")
        else:
            _print_assessment("Theory", validate_grounded_theory(store.load_theory(project)))
    except (QualtheoryError, ValueError) as exc:
        _fail(exc)


@app.command()
def report(
    project: str = typer.Option(..., "-p", "--project"),
    config_path: Optional[str] = typer.Option(None, "-c"),
    out_dir: Optional[str] = typer.Option(None, "-o"),
):
    conf = _setup(config_path)
    store = _store(conf)
    out_dir = out_dir or conf.output.out_dir
    os.makedirs(out_dir, exist_ok=True)
    stats = {"project": project}
    assessments = {}
    theory = None
    codebook = themes = None
    try:
        if store.exists(project, store.CODEBOOK):
            codebook = store.load_codebook(project)
            stats["codes"] = len(codebook.codes)
            stats["hierarchy_depth"] = codebook.quality_metrics.hierarchy_depth
            assessments["Codebook"] = validate_codebook(codebook)
        if store.exists(project, store.THEMES):
            themes = store.load_themes(project)
            stats["themes"] = len(themes)
            stats["saturation"] = is_saturated(themes)
            expected = max((t.prevalence.total_participants for t in themes), default=0) * DATA_POINTS_PER_SOURCE
            if themes and expected > 0:
                assessments["Themes"] = validate_themes(themes, expected)
        if store.exists(project, store.THEORY):
            theory = store.load_theory(project)
            stats["relationships"] = len(theory.category_relationships)
            assessments["Theory"] = validate_grounded_theory(theory)
    except (QualtheoryError, ValueError) as exc:
        _fail(exc)
    concept = concept_map(codebook.codes, themes) if codebook and themes else None
    md = emit_markdown(os.path.join(out_dir, f"{project}_report.md"), stats, theory, assessments, concept)
    html = emit_html(os.path.join(out_dir, f"{project}_report.html"), stats, theory, assessments, concept)
    console.print(f"[ok]Wrote[/ok] {md} and {html}")


@app.command()
def methodologies(
    config_path: Optional[str] = typer.Option(None, "-c"),
    validate: bool = typer.Option(False, "--validate/--no-validate"),
    detail: Optional[str] = typer.Option(None, "--detail", help="Show stages, tools and criteria of one methodology"),
    stage: Optional[str] = typer.Option(None, "--stage", help="With --detail: print this stage's prompt"),
    variables: List[str] = typer.Option([], "--var", help="key=value substituted into the stage prompt (repeatable)"),
):
    conf = _setup(config_path)
    path = conf.methodology.methodologies_dir
    if detail:
        _methodology_detail(detail, path, stage, variables)
        return
    table = Table(title="Methodologies")
    table.add_column("Id", no_wrap=True)
    table.add_column("Name")
    table.add_column("Stages")
    if validate:
        table.add_column("Valid")
    for mid in list_methodologies(path):
        meth = load_methodology(mid, path)
        if meth is None:
            continue
        row = [mid, meth.name, str(len(meth.stages))]
        if validate:
            check = validate_methodology_structure(meth)
            row.append("yes" if check["valid"] else "; ".join(check["errors"]))
        table.add_row(*row)
    console.print(table)


def _methodology_detail(mid: str, path: Optional[str], stage: Optional[str], variables: List[str]):
    meth = load_methodology(mid, path)
    if meth is None:
        _fail(QualtheoryError(f"Methodology not found: {mid}"))
    if stage:
        values = dict(v.split("=", 1) for v in variables if "=" in v)
        prompt = get_stage_prompt(meth, stage, values)
        if not prompt:
            _fail(QualtheoryError(f"No stage {stage!r} in {mid}"))
        console.print(prompt, markup=False)
        return
    console.print(f"[info]{meth.name}[/info] v{meth.version}")
    stages = Table(title="Stages")
    stages.add_column("Order")
    stages.add_column("Stage", no_wrap=True)
    stages.add_column("Tools")
    for s in sorted(meth.stages, key=lambda s: s.order or 0):
        tools = [t for t in get_recommended_tools(meth) if s.name in meth.tools and is_tool_applicable(meth, t, s.name)]
        stages.add_row(str(s.order), s.name, ", ".join(tools))
    console.print(stages)
    for criterion, items in get_quality_criteria(meth).items():
        console.print(f"[ok]{criterion}[/ok]: {'; '.join(items)}")


if __name__ == "__main__":
    app()
