from __future__ import annotations

import logging
import os
import sys
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Optional, Sequence

import typer

from .config import Config, DEFAULT_CONFIG_PATH
from .errors import (
    InternalError,
    OverlapConflict,
    RequiredFieldMissing,
    SigoError,
    UsageError,
)
from .localization import Localizer
from .models import ABSENCE_TYPES, ENTITY_PERSON, RANKS, RESTRICTION_CODES, Absence, Person, Restriction, StatusResult
from .output import SUPPORTED_FORMATS, render_output
from .repository import STATE_FILE_DEFAULT, StateRepository
from .service import CoreService

APP_NAME = "sigo"
LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"

app = typer.Typer(name=APP_NAME, add_completion=False, context_settings={"help_option_names": ["-h", "--help"]})

policial_app = typer.Typer(help="Cadastro de policiais.")
afastamento_app = typer.Typer(help="Afastamentos (ferias, medico, licenca, curso, outros).")
restricao_app = typer.Typer(help="Restricoes funcionais (BG PM 166/2006).")
status_app = typer.Typer(help="Status operacional por data de referencia.")
auditoria_app = typer.Typer(help="Trilha de auditoria.")
arquivo_app = typer.Typer(help="Backup e exportacao.")
config_app = typer.Typer(help="Configuracao do sistema.")
sistema_app = typer.Typer(help="Utilitarios gerais.")

app.add_typer(policial_app, name="policial")
app.add_typer(afastamento_app, name="afastamento")
app.add_typer(restricao_app, name="restricao")
app.add_typer(status_app, name="status")
app.add_typer(auditoria_app, name="auditoria")
app.add_typer(arquivo_app, name="arquivo")
app.add_typer(config_app, name="config")
app.add_typer(sistema_app, name="sistema")

PERSON_COLUMNS = ["id", "re", "posto", "nome_guerra", "nome", "ativo"]
ABSENCE_COLUMNS = ["id", "policial", "tipo", "inicio", "fim", "dias", "documento", "obs"]
RESTRICTION_COLUMNS = ["id", "policial", "codigos", "inicio", "fim", "total_dias", "obs"]
STATUS_COLUMNS = ["id", "re", "posto", "nome_guerra", "status", "ate", "detalhe"]


@dataclass
class AppContext:
    config: Config
    config_path: Path
    state_path: Path
    repo: StateRepository
    service: CoreService
    formatter: str
    localizer: Localizer


def _ensure_format(value: str) -> str:
    fmt = value.lower()
    if fmt not in SUPPORTED_FORMATS:
        raise UsageError(f"Formato nao suportado: {value}")
    return fmt


def get_ctx(ctx: typer.Context) -> AppContext:
    if not isinstance(ctx.obj, AppContext):
        raise RuntimeError("Contexto nao inicializado")
    return ctx.obj


def print_rows(
    ctx: AppContext,
    rows: Sequence[dict],
    columns: Sequence[str],
    *,
    fmt: Optional[str] = None,
) -> None:
    formatter = _ensure_format(fmt or ctx.formatter)
    width = ctx.config.general.name_width
    widths = {"nome": width, "nome_guerra": width, "policial": width}
    typer.echo(render_output(rows, columns, formatter, width_overrides=widths))


def commit(ctx: AppContext) -> None:
    ctx.repo.save(ctx.state_path)


def person_row(person: Person) -> dict[str, Any]:
    return {
        "id": person.id,
        "re": person.registration_number,
        "posto": person.rank,
        "nome_guerra": person.short_name,
        "nome": person.full_name,
        "ativo": person.active,
    }


def absence_row(ctx: AppContext, absence: Absence) -> dict[str, Any]:
    person = ctx.repo.get(ENTITY_PERSON, absence.person_id)
    return {
        "id": absence.id,
        "policial": person.label if person else absence.person_id,
        "tipo": absence.type,
        "inicio": absence.start_date,
        "fim": absence.end_date,
        "dias": absence.days,
        "documento": absence.document,
        "obs": absence.note,
    }


def restriction_row(ctx: AppContext, restriction: Restriction) -> dict[str, Any]:
    person = ctx.repo.get(ENTITY_PERSON, restriction.person_id)
    return {
        "id": restriction.id,
        "policial": person.label if person else restriction.person_id,
        "codigos": restriction.codes,
        "inicio": restriction.start_date,
        "fim": restriction.end_date,
        "total_dias": restriction.total_days,
        "obs": restriction.note,
    }


def status_row(person: Person, result: StatusResult) -> dict[str, Any]:
    row = {**person_row(person), "status": result.status, "ate": None, "detalhe": None}
    if result.active_absence is not None:
        row["ate"] = result.active_absence.end_date
        row["detalhe"] = ABSENCE_TYPES[result.active_absence.type]
    elif result.active_restriction is not None:
        row["ate"] = result.active_restriction.end_date
        row["detalhe"] = ",".join(result.active_restriction.codes)
    return row


@app.callback(invoke_without_command=True)
def main(
    ctx: typer.Context,
    config_path: Path = typer.Option(DEFAULT_CONFIG_PATH, "--config", help="Caminho do config TOML."),
    state_path: Path = typer.Option(STATE_FILE_DEFAULT, "--state", help="Arquivo de estado JSON."),
    formatter: str = typer.Option("table", "--format", help="table|json|csv|yaml"),
    usuario: Optional[str] = typer.Option(None, "--usuario", help="Identidade registrada na auditoria."),
    verbose: bool = typer.Option(False, "-v", "--verbose", help="Log detalhado."),
) -> None:
    overrides: dict[str, Any] = {}
    if usuario:
        overrides["general.current_user"] = usuario
    config = Config.load(path=config_path, env=os.environ, overrides=overrides)
    logging.basicConfig(level=logging.DEBUG if verbose else config.log_level, format=LOG_FORMAT)
    repo = StateRepository(state_path)
    localizer = Localizer(config.general.default_locale)
    ctx.obj = AppContext(
        config=config,
        config_path=config_path,
        state_path=state_path,
        repo=repo,
        service=CoreService(repo, config, localizer=localizer),
        formatter=_ensure_format(formatter),
        localizer=localizer,
    )
    if ctx.invoked_subcommand is None:
        typer.echo(ctx.get_help())
        raise typer.Exit()


# policiais -----------------------------------------------------------
@policial_app.command("listar")
def policial_listar(
    ctx: typer.Context,
    todos: bool = typer.Option(False, "--todos", help="Inclui inativos."),
    format: Optional[str] = typer.Option(None, "--format"),
) -> None:
    app_ctx = get_ctx(ctx)
    people = app_ctx.service.list_people(active_only=not todos)
    print_rows(app_ctx, [person_row(person) for person in people], PERSON_COLUMNS, fmt=format)


@policial_app.command("mostrar")
def policial_mostrar(
    ctx: typer.Context,
    pid: int = typer.Option(..., "--id"),
    data: Optional[str] = typer.Option(None, "--data", help="Data de referencia YYYY-MM-DD."),
    format: Optional[str] = typer.Option(None, "--format"),
) -> None:
    app_ctx = get_ctx(ctx)
    person = app_ctx.service.get_person(pid)
    result = app_ctx.service.derive_status(pid, data)
    print_rows(app_ctx, [status_row(person, result)], STATUS_COLUMNS, fmt=format)
    absences = [absence_row(app_ctx, item) for item in app_ctx.service.list_absences(pid)]
    if absences:
        typer.echo("")
        print_rows(app_ctx, absences, ABSENCE_COLUMNS, fmt=format)
    restrictions = [restriction_row(app_ctx, item) for item in app_ctx.service.list_restrictions(pid)]
    if restrictions:
        typer.echo("")
        print_rows(app_ctx, restrictions, RESTRICTION_COLUMNS, fmt=format)


@policial_app.command("adicionar")
def policial_adicionar(
    ctx: typer.Context,
    re: str = typer.Option(..., "--re"),
    nome: str = typer.Option(..., "--nome"),
    nome_guerra: str = typer.Option(..., "--nome-guerra"),
    posto: str = typer.Option(..., "--posto", help="|".join(RANKS)),
    ativo: bool = typer.Option(True, "--ativo/--inativo"),
    format: Optional[str] = typer.Option(None, "--format"),
) -> None:
    app_ctx = get_ctx(ctx)
    person = app_ctx.service.create_person(
        {"registration_number": re, "full_name": nome, "short_name": nome_guerra, "rank": posto, "active": ativo}
    )
    commit(app_ctx)
    typer.echo(app_ctx.localizer.text("person.added"))
    print_rows(app_ctx, [person_row(person)], PERSON_COLUMNS, fmt=format)


@policial_app.command("editar")
def policial_editar(
    ctx: typer.Context,
    pid: int = typer.Option(..., "--id"),
    re: Optional[str] = typer.Option(None, "--re"),
    nome: Optional[str] = typer.Option(None, "--nome"),
    nome_guerra: Optional[str] = typer.Option(None, "--nome-guerra"),
    posto: Optional[str] = typer.Option(None, "--posto"),
    ativo: Optional[bool] = typer.Option(None, "--ativo/--inativo"),
) -> None:
    app_ctx = get_ctx(ctx)
    app_ctx.service.update_person(
        pid,
        {"registration_number": re, "full_name": nome, "short_name": nome_guerra, "rank": posto, "active": ativo},
    )
    commit(app_ctx)
    typer.echo(app_ctx.localizer.text("person.updated"))


@policial_app.command("remover")
def policial_remover(
    ctx: typer.Context,
    pid: int = typer.Option(..., "--id"),
) -> None:
    app_ctx = get_ctx(ctx)
    app_ctx.service.delete_person(pid)
    commit(app_ctx)
    typer.echo(app_ctx.localizer.text("person.removed"))


# afastamentos --------------------------------------------------------
@afastamento_app.command("listar")
def afastamento_listar(
    ctx: typer.Context,
    policial: Optional[int] = typer.Option(None, "--policial"),
    format: Optional[str] = typer.Option(None, "--format"),
) -> None:
    app_ctx = get_ctx(ctx)
    rows = [absence_row(app_ctx, item) for item in app_ctx.service.list_absences(policial)]
    print_rows(app_ctx, rows, ABSENCE_COLUMNS, fmt=format)


@afastamento_app.command("adicionar")
def afastamento_adicionar(
    ctx: typer.Context,
    policial: int = typer.Option(..., "--policial"),
    tipo: str = typer.Option(..., "--tipo", help="|".join(ABSENCE_TYPES)),
    de: str = typer.Option(..., "--de"),
    ate: str = typer.Option(..., "--ate"),
    documento: Optional[str] = typer.Option(None, "--documento"),
    obs: Optional[str] = typer.Option(None, "--obs"),
    format: Optional[str] = typer.Option(None, "--format"),
) -> None:
    app_ctx = get_ctx(ctx)
    absence = app_ctx.service.create_absence(
        {"person_id": policial, "type": tipo, "start_date": de, "end_date": ate, "document": documento, "note": obs}
    )
    commit(app_ctx)
    typer.echo(app_ctx.localizer.text("absence.added"))
    print_rows(app_ctx, [absence_row(app_ctx, absence)], ABSENCE_COLUMNS, fmt=format)


@afastamento_app.command("editar")
def afastamento_editar(
    ctx: typer.Context,
    aid: int = typer.Option(..., "--id"),
    tipo: Optional[str] = typer.Option(None, "--tipo"),
    de: Optional[str] = typer.Option(None, "--de"),
    ate: Optional[str] = typer.Option(None, "--ate"),
    documento: Optional[str] = typer.Option(None, "--documento"),
    obs: Optional[str] = typer.Option(None, "--obs"),
) -> None:
    app_ctx = get_ctx(ctx)
    app_ctx.service.update_absence(
        aid, {"type": tipo, "start_date": de, "end_date": ate, "document": documento, "note": obs}
    )
    commit(app_ctx)
    typer.echo(app_ctx.localizer.text("absence.updated"))


@afastamento_app.command("remover")
def afastamento_remover(
    ctx: typer.Context,
    aid: int = typer.Option(..., "--id"),
) -> None:
    app_ctx = get_ctx(ctx)
    app_ctx.service.delete_absence(aid)
    commit(app_ctx)
    typer.echo(app_ctx.localizer.text("absence.removed"))


# restricoes ----------------------------------------------------------
@restricao_app.command("listar")
def restricao_listar(
    ctx: typer.Context,
    policial: Optional[int] = typer.Option(None, "--policial"),
    format: Optional[str] = typer.Option(None, "--format"),
) -> None:
    app_ctx = get_ctx(ctx)
    rows = [restriction_row(app_ctx, item) for item in app_ctx.service.list_restrictions(policial)]
    print_rows(app_ctx, rows, RESTRICTION_COLUMNS, fmt=format)


@restricao_app.command("adicionar")
def restricao_adicionar(
    ctx: typer.Context,
    policial: int = typer.Option(..., "--policial"),
    codigos: str = typer.Option(..., "--codigos", help="Ex.: \"AA, CF DC\""),
    de: str = typer.Option(..., "--de"),
    ate: str = typer.Option(..., "--ate"),
    obs: Optional[str] = typer.Option(None, "--obs"),
    format: Optional[str] = typer.Option(None, "--format"),
) -> None:
    app_ctx = get_ctx(ctx)
    restriction = app_ctx.service.create_restriction(
        {"person_id": policial, "codes": codigos, "start_date": de, "end_date": ate, "note": obs}
    )
    commit(app_ctx)
    typer.echo(app_ctx.localizer.text("restriction.added"))
    print_rows(app_ctx, [restriction_row(app_ctx, restriction)], RESTRICTION_COLUMNS, fmt=format)


@restricao_app.command("editar")
def restricao_editar(
    ctx: typer.Context,
    rid: int = typer.Option(..., "--id"),
    codigos: Optional[str] = typer.Option(None, "--codigos"),
    de: Optional[str] = typer.Option(None, "--de"),
    ate: Optional[str] = typer.Option(None, "--ate"),
    obs: Optional[str] = typer.Option(None, "--obs"),
) -> None:
    app_ctx = get_ctx(ctx)
    app_ctx.service.update_restriction(rid, {"codes": codigos, "start_date": de, "end_date": ate, "note": obs})
    commit(app_ctx)
    typer.echo(app_ctx.localizer.text("restriction.updated"))


@restricao_app.command("remover")
def restricao_remover(
    ctx: typer.Context,
    rid: int = typer.Option(..., "--id"),
) -> None:
    app_ctx = get_ctx(ctx)
    app_ctx.service.delete_restriction(rid)
    commit(app_ctx)
    typer.echo(app_ctx.localizer.text("restriction.removed"))


@restricao_app.command("codigos")
def restricao_codigos(
    ctx: typer.Context,
    format: Optional[str] = typer.Option(None, "--format"),
) -> None:
    app_ctx = get_ctx(ctx)
    rows = [{"codigo": code, "descricao": text} for code, text in RESTRICTION_CODES.items()]
    print_rows(app_ctx, rows, ["codigo", "descricao"], fmt=format)


# status --------------------------------------------------------------
@status_app.command("painel")
def status_painel(
    ctx: typer.Context,
    data: Optional[str] = typer.Option(None, "--data", help="Data de referencia YYYY-MM-DD."),
    busca: Optional[str] = typer.Option(None, "--busca", help="RE, nome ou nome de guerra."),
    format: Optional[str] = typer.Option(None, "--format"),
) -> None:
    app_ctx = get_ctx(ctx)
    rows = [status_row(person, result) for person, result in app_ctx.service.people_with_status(data, query=busca)]
    print_rows(app_ctx, rows, STATUS_COLUMNS, fmt=format)


@status_app.command("resumo")
def status_resumo(
    ctx: typer.Context,
    data: Optional[str] = typer.Option(None, "--data"),
    format: Optional[str] = typer.Option(None, "--format"),
) -> None:
    app_ctx = get_ctx(ctx)
    summary = app_ctx.service.status_summary(data)
    rows = [{"indicador": "total", "valor": summary["total"]}]
    rows.extend({"indicador": status, "valor": count} for status, count in summary["by_status"].items())
    rows.extend({"indicador": f"afastamento:{kind}", "valor": count} for kind, count in summary["absences_by_type"].items())
    print_rows(app_ctx, rows, ["indicador", "valor"], fmt=format)


# auditoria -----------------------------------------------------------
@auditoria_app.command("listar")
def auditoria_listar(
    ctx: typer.Context,
    entidade: Optional[str] = typer.Option(None, "--entidade", help="person|absence|restriction|todos"),
    de: Optional[str] = typer.Option(None, "--de"),
    ate: Optional[str] = typer.Option(None, "--ate"),
    usuario: Optional[str] = typer.Option(None, "--usuario"),
    format: Optional[str] = typer.Option(None, "--format"),
) -> None:
    app_ctx = get_ctx(ctx)
    entries = app_ctx.service.list_audit(entity=entidade, start=de, end=ate, actor=usuario)
    rows = [
        {
            "id": entry.id,
            "quando": entry.timestamp,
            "entidade": entry.entity,
            "registro": entry.entity_id,
            "acao": entry.action,
            "usuario": entry.actor,
            "descricao": entry.description,
        }
        for entry in entries
    ]
    print_rows(app_ctx, rows, ["id", "quando", "entidade", "registro", "acao", "usuario", "descricao"], fmt=format)


# arquivo -------------------------------------------------------------
@arquivo_app.command("exportar")
def arquivo_exportar(
    ctx: typer.Context,
    path: Path = typer.Option(..., "--path"),
) -> None:
    app_ctx = get_ctx(ctx)
    target = app_ctx.service.export_json(path)
    typer.echo(app_ctx.localizer.text("export.saved", path=target))


# config --------------------------------------------------------------
@config_app.command("mostrar")
def config_mostrar(
    ctx: typer.Context,
    format: Optional[str] = typer.Option(None, "--format"),
) -> None:
    app_ctx = get_ctx(ctx)
    cfg = app_ctx.config
    rows = [
        {"secao": "general", "chave": "timezone", "valor": cfg.general.timezone},
        {"secao": "general", "chave": "default_locale", "valor": cfg.general.default_locale},
        {"secao": "general", "chave": "name_width", "valor": cfg.general.name_width},
        {"secao": "general", "chave": "current_user", "valor": cfg.general.current_user},
        {"secao": "audit", "chave": "export_limit", "valor": cfg.audit.export_limit},
        {"secao": "logging", "chave": "level", "valor": cfg.logging.level},
    ]
    print_rows(app_ctx, rows, ["secao", "chave", "valor"], fmt=format)


# sistema -------------------------------------------------------------
@sistema_app.command("demo")
def sistema_demo(
    ctx: typer.Context,
    data: Optional[str] = typer.Option(None, "--data", help="Data base YYYY-MM-DD (padrao: hoje)."),
) -> None:
    app_ctx = get_ctx(ctx)
    if app_ctx.service.seed_demo_data(data):
        commit(app_ctx)
        typer.echo(app_ctx.localizer.text("demo.seeded"))
    else:
        typer.echo(app_ctx.localizer.text("demo.skipped"))


@sistema_app.command("hoje")
def sistema_hoje(ctx: typer.Context) -> None:
    app_ctx = get_ctx(ctx)
    typer.echo(app_ctx.service.today().isoformat())


# entrada principal
def report_error(exc: SigoError) -> None:
    if isinstance(exc, OverlapConflict):
        typer.secho(Localizer().text("conflict.title", message=exc.message), err=True, fg=typer.colors.RED)
        return
    if isinstance(exc, RequiredFieldMissing):
        for field_name, message in exc.errors.items():
            typer.secho(f"{field_name}: {message}", err=True)
        return
    typer.secho(str(exc), err=True)


def main_entry() -> None:
    try:
        app()
    except SigoError as exc:
        report_error(exc)
        sys.exit(exc.code)
    except Exception as exc:  # pragma: no cover
        logging.getLogger(__name__).exception("Erro interno")
        error = InternalError(f"Erro interno: {exc}")
        report_error(error)
        sys.exit(error.code)
