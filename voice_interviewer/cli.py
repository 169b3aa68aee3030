"""CLI interface for the Voice Interviewer."""
import asyncio
import json
import sys
from typing import Optional

import aiofiles
import click
from rich.console import Console
from rich.panel import Panel
from rich.progress import Progress, SpinnerColumn, TextColumn
from rich.table import Table

from . import __version__
from .agents.evaluator_agent import AnswerEvaluator
from .agents.followup_injector import FollowUpInjector
from .agents.intent_agent import IntentClassifier
from .agents.orchestrator_agent import TurnOrchestrator
from .agents.planner_agent import PlannerAgent, list_templates
from .agents.report_agent import ReportAgent
from .models.enums import Phase
from .models.interview import InterviewPlan, InterviewReport, InterviewSetup
from .parsers.profile_extractor import ProfileExtractor
from .services.advisor import InterviewAdvisor, build_advisor
from .services.configuration_manager import AppConfig, ConfigurationManager
from .services.speech import ConsoleListener, ConsoleSynthesizer
from .utils.exceptions import ConfigurationError, InterviewerError
from .utils.logging import get_logger, setup_logging


console = Console()
logger = get_logger("cli")

# Text mode retries listening after an error, then gives up on the session
ERROR_RETRY_DELAY = 1.0
MAX_CONSECUTIVE_ERRORS = 3


@click.group()
@click.version_option(version=__version__)
@click.option("--config", "-c", type=click.Path(exists=True, file_okay=False), help="Configuration directory")
@click.option("--verbose", "-v", is_flag=True, help="Enable verbose logging")
@click.pass_context
def cli(ctx: click.Context, config: Optional[str], verbose: bool):
    """Voice Interviewer - rehearse a spoken technical interview."""
    ctx.ensure_object(dict)

    config_manager = ConfigurationManager(config or "config")
    try:
        config_manager.initialize()
    except ConfigurationError as e:
        console.print(f"[red]Invalid configuration: {e}[/red]")
        sys.exit(1)

    logging_kwargs = config_manager.get_logging_config()
    if verbose:
        logging_kwargs["level"] = "DEBUG"
        logging_kwargs["enable_console"] = True
    setup_logging(**logging_kwargs)

    ctx.obj["config_manager"] = config_manager
    logger.info("CLI initialized")


def _setup_from_options(config: AppConfig, name: str, domain: Optional[str],
                        duration: Optional[int], resume_text: str, jd_text: str,
                        years: Optional[float]) -> InterviewSetup:
    return InterviewSetup(
        candidate_name=name,
        domain=domain or config.interview.default_domain,
        duration_minutes=duration or config.interview.default_duration_minutes,
        resume_text=resume_text,
        jd_text=jd_text,
        years_of_experience=years,
    )


async def _read_text(path: Optional[str]) -> str:
    if not path:
        return ""
    async with aiofiles.open(path, "r", encoding="utf-8") as f:
        return await f.read()


def build_orchestrator(config: AppConfig, advisor: Optional[InterviewAdvisor],
                       listener, synthesizer) -> TurnOrchestrator:
    """Wire every agent of a session around one advisor (or none)."""
    orchestrator = TurnOrchestrator(
        planner=PlannerAgent(advisor),
        evaluator=AnswerEvaluator(advisor, context_window=config.interview.context_window),
        classifier=IntentClassifier(advisor, config.timing.default_thinking_extension),
        injector=FollowUpInjector(config.interview.max_dynamic_followups),
        reporter=ReportAgent(advisor),
        listener=listener,
        synthesizer=synthesizer,
        config=config,
        extractor=ProfileExtractor(),
    )
    orchestrator.initialize()
    return orchestrator


def _plan_table(plan: InterviewPlan) -> Table:
    table = Table(title=f"{plan.template_label} interview plan")
    table.add_column("#", justify="right")
    table.add_column("Id")
    table.add_column("Kind")
    table.add_column("Competency")
    table.add_column("Source")
    table.add_column("Prompt", overflow="fold")

    for index, question in enumerate(plan.questions, start=1):
        table.add_row(
            str(index), question.id, question.kind.value, question.competency,
            question.source.value, question.prompt,
        )
    table.caption = (
        f"Main questions cap: {plan.max_main_questions} | "
        f"Follow-up budget: {plan.follow_up_budget} | "
        f"Turn limit: {plan.total_turns_limit}"
    )
    return table


def _report_panel(report: InterviewReport) -> Panel:
    lines = [
        f"[bold]Candidate:[/bold] {report.candidate_name or 'N/A'}",
        f"[bold]Interview:[/bold] {report.template_label}",
        f"[bold]Overall score:[/bold] {report.overall_score:.1f}/5.0",
        f"[bold]Answered:[/bold] {report.total_answers} of {report.total_turns} turns",
        f"[bold]Ended:[/bold] {report.end_reason}",
    ]
    if report.competency_scores:
        lines.append("\n[bold]Competencies:[/bold]")
        lines.extend(f"- {item.competency}: {item.score:.1f}" for item in report.competency_breakdown())
    lines.append("\n[bold]Strengths:[/bold]")
    lines.extend(f"- {item}" for item in report.strengths)
    lines.append("\n[bold]Improvements:[/bold]")
    lines.extend(f"- {item}" for item in report.improvements)
    if report.matched_skills or report.missing_required_skills:
        lines.append(f"\n[bold]Matched skills:[/bold] {', '.join(report.matched_skills) or 'none'}")
        lines.append(f"[bold]Missing required skills:[/bold] {', '.join(report.missing_required_skills) or 'none'}")
    if report.summary:
        lines.append(f"\n{report.summary}")
    if report.recommendation:
        lines.append(f"\n[bold]Recommendation:[/bold] {report.recommendation}")
    return Panel("\n".join(lines), title="Final Report", border_style="blue")


@cli.command()
@click.option("--resume", "-r", type=click.Path(exists=True, dir_okay=False), help="Path to resume text")
@click.option("--job-desc", "-j", type=click.Path(exists=True, dir_okay=False), help="Path to job description text")
@click.option("--name", "-n", default="", help="Candidate name")
@click.option("--domain", "-d", help="Interview template id or label")
@click.option("--duration", "-m", type=int, help="Interview length in minutes")
@click.option("--years", type=float, help="Years of experience, overrides the resume")
@click.option("--offline", is_flag=True, help="Do not consult the advisor")
@click.pass_context
def plan(ctx: click.Context, resume: Optional[str], job_desc: Optional[str], name: str,
         domain: Optional[str], duration: Optional[int], years: Optional[float], offline: bool):
    """Build and print the question plan without running the interview."""
    try:
        asyncio.run(_show_plan(ctx.obj["config_manager"], resume, job_desc, name, domain, duration, years, offline))
    except InterviewerError as e:
        console.print(f"[red]Failed to build plan: {e}[/red]")
        logger.error(f"Plan failed: {e}")
        sys.exit(1)


async def _show_plan(config_manager: ConfigurationManager, resume: Optional[str], job_desc: Optional[str],
                     name: str, domain: Optional[str], duration: Optional[int],
                     years: Optional[float], offline: bool):
    config = config_manager.get_config()
    setup = _setup_from_options(
        config, name, domain, duration, await _read_text(resume), await _read_text(job_desc), years
    )
    advisor = None if offline else build_advisor(config_manager)
    extractor = ProfileExtractor()
    candidate, role = extractor.extract(setup.resume_text, setup.jd_text)

    try:
        with Progress(SpinnerColumn(), TextColumn("[progress.description]{task.description}"),
                      console=console, transient=True) as progress:
            progress.add_task("Building your interview plan...", total=None)
            interview_plan = await PlannerAgent(advisor).plan(setup, candidate, role)
    finally:
        if advisor is not None:
            await advisor.close()

    console.print(_plan_table(interview_plan))
    if candidate.skills:
        console.print(f"[dim]Resume skills: {', '.join(candidate.skills)}[/dim]")
    if role.required_skills:
        console.print(f"[dim]Required skills: {', '.join(role.required_skills)}[/dim]")


@cli.command()
@click.option("--resume", "-r", type=click.Path(exists=True, dir_okay=False), help="Path to resume text")
@click.option("--job-desc", "-j", type=click.Path(exists=True, dir_okay=False), help="Path to job description text")
@click.option("--name", "-n", default="", help="Candidate name")
@click.option("--domain", "-d", help="Interview template id or label")
@click.option("--duration", "-m", type=int, help="Interview length in minutes")
@click.option("--years", type=float, help="Years of experience, overrides the resume")
@click.option("--offline", is_flag=True, help="Do not consult the advisor")
@click.option("--report-out", "-o", type=click.Path(dir_okay=False, writable=True), help="Write the report as JSON")
@click.pass_context
def interview(ctx: click.Context, resume: Optional[str], job_desc: Optional[str], name: str,
              domain: Optional[str], duration: Optional[int], years: Optional[float],
              offline: bool, report_out: Optional[str]):
    """Run a text-mode interview rehearsal in the terminal."""
    welcome_content = "\n".join([
        "Welcome to the Voice Interviewer rehearsal!",
        "Type your answers and press Enter.",
        "Commands: /skip to skip a question, /end to finish now.",
    ])
    console.print(Panel(welcome_content, title="Interview Session Setup", border_style="blue"))

    try:
        report = asyncio.run(_run_interview(
            ctx.obj["config_manager"], resume, job_desc, name, domain, duration, years, offline, report_out
        ))
    except InterviewerError as e:
        console.print(f"[red]Interview failed: {e}[/red]")
        logger.error(f"Interview execution failed: {e}")
        sys.exit(1)

    console.print(_report_panel(report))
    if report_out:
        console.print(f"[green]Report written to {report_out}[/green]")


def _log_end_failure(task: "asyncio.Future") -> None:
    if task.cancelled():
        logger.debug("End of interview was cancelled")
        return
    error = task.exception()
    if error is not None:
        logger.error(f"Ending the interview failed: {error}")
        console.print(f"[red]Could not end the interview cleanly: {error}[/red]")


async def _run_interview(config_manager: ConfigurationManager, resume: Optional[str], job_desc: Optional[str],
                         name: str, domain: Optional[str], duration: Optional[int],
                         years: Optional[float], offline: bool, report_out: Optional[str]) -> InterviewReport:
    config = config_manager.get_config()
    setup = _setup_from_options(
        config, name, domain, duration, await _read_text(resume), await _read_text(job_desc), years
    )
    advisor = None if offline else build_advisor(config_manager)

    listener = ConsoleListener(console=console)
    orchestrator = build_orchestrator(config, advisor, listener, ConsoleSynthesizer(console))
    ending = set()

    def end_session(reason: str) -> None:
        task = asyncio.ensure_future(orchestrator.end_interview(reason))
        ending.add(task)
        task.add_done_callback(_log_end_failure)
        task.add_done_callback(ending.discard)

    def handle_command(command: str) -> None:
        if command == "skip":
            if not orchestrator.skip_question():
                console.print("[yellow]Nothing to skip right now.[/yellow]")
        elif command in ("end", "quit", "exit"):
            end_session("ended_by_user")
        else:
            console.print(f"[yellow]Unknown command: /{command}[/yellow]")

    errors = []

    def recover(phase: Phase, message: str) -> None:
        if phase is Phase.PROCESSING:
            errors.clear()
            return
        if phase is not Phase.ERROR:
            return
        console.print(f"[red]{message}[/red]")
        errors.append(message)
        if len(errors) >= MAX_CONSECUTIVE_ERRORS or "closed" in message:
            end_session("error")
        else:
            asyncio.get_running_loop().call_later(ERROR_RETRY_DELAY, orchestrator.resume_listening)

    listener.command_handler = handle_command
    orchestrator.on_phase_change = recover

    try:
        with Progress(SpinnerColumn(), TextColumn("[progress.description]{task.description}"),
                      console=console, transient=True) as progress:
            progress.add_task("Preparing personalized interview...", total=None)
            interview_plan = await orchestrator.prepare(setup)

        console.print(
            f"[bold green]{interview_plan.template_label} interview, "
            f"{len(interview_plan)} questions planned.[/bold green]\n"
        )
        orchestrator.start()
        report = await orchestrator.wait_finished()
    finally:
        await orchestrator.cleanup()
        if advisor is not None:
            await advisor.close()

    if report_out:
        async with aiofiles.open(report_out, "w", encoding="utf-8") as f:
            await f.write(json.dumps(report.to_dict(), indent=2))
    return report


@cli.command()
def domains():
    """List the available interview templates."""
    table = Table(title="Interview templates")
    table.add_column("Id")
    table.add_column("Label")
    table.add_column("Description")
    for template in list_templates():
        table.add_row(template["id"], template["label"], template["description"])
    console.print(table)


@cli.command(name="config")
@click.pass_context
def show_config(ctx: click.Context):
    """Show the effective configuration."""
    summary = ctx.obj["config_manager"].get_configuration_summary()

    table = Table(title=f"{summary['app_name']} {summary['version']} ({summary['environment']})")
    table.add_column("Setting")
    table.add_column("Value")
    for section in ("interview", "timing"):
        for key, value in summary[section].items():
            table.add_row(f"{section}.{key}", str(value))
    for name, provider in summary["llm_providers"].items():
        table.add_row(f"provider.{name}", f"{provider['model']} (timeout {provider['timeout']}s)")
    if not summary["llm_providers"]:
        table.add_row("provider", "none, heuristic mode")
    console.print(table)


def main():
    """Main entry point for the CLI."""
    try:
        cli()
    except KeyboardInterrupt:
        console.print("\n[yellow]Interview interrupted by user.[/yellow]")
        sys.exit(0)


if __name__ == "__main__":
    main()
