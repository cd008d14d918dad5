#!/usr/bin/env python3
"""Command-line interface for the debate arena.

Usage examples:
    python cli.py debate --setup config/sample_debate.yaml
    python cli.py debate --topic "Tax" --candidate-a "Ana" --candidate-b "Bruno" --voter "Carla" --rounds 1
    python cli.py debate --setup config/sample_debate.yaml --stop-after 4 --fast
    python cli.py research --name "Ana Ribeiro"
    python cli.py stats
"""

from __future__ import annotations

import asyncio
import logging
import sys
from pathlib import Path
from typing import Any

import click
import yaml

from agents import (
    FALLBACK_TEXTS,
    Debater,
    GeminiSpeechSynthesizer,
    Judge,
    LLMProvider,
    Moderator,
    ProfileResearcher,
    ResilientInvoker,
    RetryPolicy,
    create_provider,
)
from agents.speech import write_wav
from data.database import StatsDatabase
from data.models import Candidate, DebateConfig, EvaluationResult, Message, Speaker, VoterProfile, WinnerId
from evaluation.metrics import compute_transcript_metrics
from evaluation.rubric import CRITERIA
from evaluation.validators import DebateValidator
from orchestration import DebateSession, PacingConfig, SessionStatus, TurnOrchestrator
from viz.visualize import DebateVisualizer


# ---------------------------------------------------------------------------
# Live debate display
# ---------------------------------------------------------------------------

# Speaker -> ANSI colour code for terminal output
_SPEAKER_STYLES: dict[Speaker, str] = {
    Speaker.A: "\033[1;34m",          # bold blue
    Speaker.B: "\033[1;33m",          # bold yellow
    Speaker.MODERATOR: "\033[1;35m",  # bold magenta
}
_RESET = "\033[0m"
_DIM = "\033[2m"


def _print_message(msg: Message, names: dict[Speaker, str]) -> None:
    """Pretty-print a single transcript message to the terminal."""
    colour = _SPEAKER_STYLES.get(msg.sender_id, "\033[1m")

    # Header bar
    click.echo(f"\n{colour}{'─' * 60}")
    click.echo(f"  [{names[msg.sender_id]}]  {msg.phase or ''}")
    click.echo(f"{'─' * 60}{_RESET}")

    for paragraph in msg.text.strip().split("\n"):
        click.echo(f"  {paragraph}")

    click.echo(f"{_DIM}  [{msg.created_at:%H:%M:%S}]{_RESET}")


def _print_scorecard(
    result: EvaluationResult,
    config: DebateConfig,
) -> None:
    names = {Speaker.A.value: config.candidate_a.name, Speaker.B.value: config.candidate_b.name}

    click.echo(f"\n{'=' * 60}")
    click.echo(f"  RESULT – voter profile: {config.voter.name}")
    click.echo(f"{'=' * 60}")
    if result.winner_id is WinnerId.TIE:
        click.echo("  Winner    : Tie")
    else:
        click.echo(f"  Winner    : {names[result.winner_id.value]}")
    click.echo(
        f"  Scores    : {config.candidate_a.name} {result.scores.candidate_a} "
        f"× {result.scores.candidate_b} {config.candidate_b.name}"
    )
    click.echo()
    click.echo("  Breakdown:")
    for criterion in CRITERIA:
        score = getattr(result.breakdown, criterion.key)
        label = f"{criterion.label} ({criterion.weight}%)"
        click.echo(
            f"    {label:25s}: "
            f"{score.score_a:3d} × {score.score_b:3d}  {score.rationale}"
        )
    click.echo("\n  Reasoning:\n")
    for line in result.reasoning.split("\n"):
        click.echo(f"    {line}")


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def _load_config(config_path: str = "config/default.yaml") -> dict[str, Any]:
    """Load and return the YAML config."""
    p = Path(config_path)
    if not p.exists():
        click.echo(f"Config not found: {p}. Using defaults.", err=True)
        return {}
    with open(p, encoding="utf-8") as f:
        return yaml.safe_load(f) or {}


def _setup_logging(level: str = "INFO") -> None:
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        stream=sys.stderr,
    )


def _build_provider(cfg: dict[str, Any], provider_name: str | None = None) -> LLMProvider:
    """Instantiate the configured generation backend."""
    api_cfg = cfg.get("api", {})
    name = provider_name or api_cfg.get("provider", "gemini")
    provider_api_cfg = api_cfg.get(name, {})

    provider_kwargs: dict[str, Any] = {}
    if provider_api_cfg.get("model"):
        provider_kwargs["model"] = provider_api_cfg["model"]
    if provider_api_cfg.get("api_key_env"):
        provider_kwargs["api_key_env"] = provider_api_cfg["api_key_env"]
    if api_cfg.get("timeout"):
        provider_kwargs["timeout"] = int(api_cfg["timeout"])

    try:
        return create_provider(name, **provider_kwargs)
    except ValueError as exc:
        raise click.ClickException(str(exc)) from exc


def _build_invoker(cfg: dict[str, Any]) -> ResilientInvoker:
    retry_cfg = cfg.get("retry", {})
    return ResilientInvoker(
        RetryPolicy(
            rate_limit_cooldown=float(retry_cfg.get("rate_limit_cooldown", 15.0)),
            base_delay=float(retry_cfg.get("base_delay", 1.0)),
            jitter=float(retry_cfg.get("jitter", 1.0)),
        )
    )


def _agent_kwargs(cfg: dict[str, Any], name: str) -> dict[str, Any]:
    acfg = cfg.get("agents", {}).get(name, {})
    kwargs: dict[str, Any] = {
        "language": cfg.get("debate", {}).get("language", "Portuguese"),
    }
    if "temperature" in acfg:
        kwargs["temperature"] = float(acfg["temperature"])
    if "max_attempts" in acfg:
        kwargs["max_attempts"] = int(acfg["max_attempts"])
    return kwargs


def _build_pacing(cfg: dict[str, Any], fast: bool) -> PacingConfig:
    if fast:
        return PacingConfig.instant()
    pacing_cfg = cfg.get("pacing", {})
    defaults = PacingConfig()
    return PacingConfig(
        settle_delay=float(pacing_cfg.get("settle_delay", defaults.settle_delay)),
        moderator_delay=float(pacing_cfg.get("moderator_delay", defaults.moderator_delay)),
        turn_delay=float(pacing_cfg.get("turn_delay", defaults.turn_delay)),
        evaluation_delay=float(pacing_cfg.get("evaluation_delay", defaults.evaluation_delay)),
    )


def _build_debate_config(setup: dict[str, Any], overrides: dict[str, str | None]) -> DebateConfig:
    """Merge a setup file with command-line overrides into a DebateConfig."""
    candidates = setup.get("candidates", {})
    cand_a = dict(candidates.get("A", {}))
    cand_b = dict(candidates.get("B", {}))
    voter = dict(setup.get("voter", {}))
    topic = overrides.get("topic") or setup.get("topic") or ""

    for target, key, option in [
        (cand_a, "name", "candidate_a"),
        (cand_a, "party", "party_a"),
        (cand_a, "description", "stance_a"),
        (cand_b, "name", "candidate_b"),
        (cand_b, "party", "party_b"),
        (cand_b, "description", "stance_b"),
        (voter, "name", "voter"),
        (voter, "interests", "interests"),
    ]:
        if overrides.get(option):
            target[key] = overrides[option]

    missing = [
        label
        for label, value in [
            ("topic", topic),
            ("candidate A name", cand_a.get("name")),
            ("candidate B name", cand_b.get("name")),
            ("voter name", voter.get("name")),
        ]
        if not value
    ]
    if missing:
        raise click.UsageError(f"Missing debate setup: {', '.join(missing)}")

    return DebateConfig(
        candidate_a=Candidate(id=Speaker.A, **{k: str(v) for k, v in cand_a.items()}),
        candidate_b=Candidate(id=Speaker.B, **{k: str(v) for k, v in cand_b.items()}),
        voter=VoterProfile(**{k: str(v) for k, v in voter.items()}),
        topic=str(topic),
    )


async def _enrich_missing_profiles(
    config: DebateConfig, researcher: ProfileResearcher
) -> DebateConfig:
    """Research stance descriptions for candidates that have none."""
    updates: dict[str, Candidate] = {}
    for field_name, candidate in [("candidate_a", config.candidate_a), ("candidate_b", config.candidate_b)]:
        if candidate.description.strip():
            continue
        click.echo(f"  Researching profile for {candidate.name} …")
        profile = await researcher.enrich(candidate.name)
        updates[field_name] = candidate.model_copy(update={"description": profile})
    return config.model_copy(update=updates) if updates else config


# ---------------------------------------------------------------------------
# CLI
# ---------------------------------------------------------------------------

@click.group()
@click.option("--config", default="config/default.yaml", help="Path to YAML config")
@click.option("--log-level", default="WARNING", help="Logging level")
@click.pass_context
def cli(ctx: click.Context, config: str, log_level: str) -> None:
    """Debate Arena – simulate a moderated two-candidate debate and score it for a voter."""
    _setup_logging(log_level)
    ctx.ensure_object(dict)
    ctx.obj["config"] = _load_config(config)
    ctx.obj["config_path"] = config


# ---- debate ---------------------------------------------------------------

@cli.command()
@click.option("--setup", "setup_path", type=click.Path(exists=True, dir_okay=False), help="Debate setup YAML")
@click.option("--topic", help="Debate topic")
@click.option("--candidate-a", help="Name of candidate A")
@click.option("--party-a", help="Party / affiliation of candidate A")
@click.option("--stance-a", help="Stance description of candidate A")
@click.option("--candidate-b", help="Name of candidate B")
@click.option("--party-b", help="Party / affiliation of candidate B")
@click.option("--stance-b", help="Stance description of candidate B")
@click.option("--voter", help="Voter profile name")
@click.option("--interests", help="Voter interests, values and rejections")
@click.option("--provider", "provider_name", help="Override the configured provider")
@click.option("--rounds", type=int, help="Number of four-turn rounds")
@click.option("--stop-after", type=int, help="Stop early after this many candidate turns")
@click.option("--enrich", is_flag=True, help="Research missing candidate stances first")
@click.option("--fast", is_flag=True, help="Skip pacing delays")
@click.option("--audio/--no-audio", default=None, help="Synthesise speech for each message")
@click.option("--audio-dir", default="viz/output/audio", help="Where WAV files are written")
@click.option("--output-dir", default="viz/output", help="Where charts and transcript go")
@click.option("--no-db", is_flag=True, help="Skip the usage counter database")
@click.pass_context
def debate(
    ctx: click.Context,
    setup_path: str | None,
    provider_name: str | None,
    rounds: int | None,
    stop_after: int | None,
    enrich: bool,
    fast: bool,
    audio: bool | None,
    audio_dir: str,
    output_dir: str,
    no_db: bool,
    **overrides: str | None,
) -> None:
    """Run a moderated debate and print the voter-centred evaluation."""
    cfg = ctx.obj["config"]
    setup: dict[str, Any] = {}
    if setup_path:
        with open(setup_path, encoding="utf-8") as f:
            setup = yaml.safe_load(f) or {}
    config = _build_debate_config(setup, overrides)

    provider = _build_provider(cfg, provider_name)
    invoker = _build_invoker(cfg)
    pacing = _build_pacing(cfg, fast)
    total_rounds = rounds or int(cfg.get("debate", {}).get("total_rounds", 2))

    debater_kwargs = _agent_kwargs(cfg, "debater")
    max_words = cfg.get("agents", {}).get("debater", {}).get("max_words")
    if max_words:
        debater_kwargs["max_words"] = int(max_words)

    orchestrator = TurnOrchestrator(
        Moderator(provider, invoker=invoker, **_agent_kwargs(cfg, "moderator")),
        Debater(provider, invoker=invoker, **debater_kwargs),
        total_rounds=total_rounds,
        pacing=pacing,
    )
    judge = Judge(provider, invoker=invoker, **_agent_kwargs(cfg, "judge"))

    speech_cfg = cfg.get("speech", {})
    audio_enabled = speech_cfg.get("enabled", False) if audio is None else audio
    speech = None
    if audio_enabled:
        try:
            speech = GeminiSpeechSynthesizer(
                model=speech_cfg.get("model", "gemini-2.5-flash-preview-tts"),
                api_key_env=speech_cfg.get("api_key_env", "GEMINI_API_KEY"),
            )
        except ValueError as exc:
            raise click.ClickException(str(exc)) from exc
    voices = {Speaker(k): str(v) for k, v in speech_cfg.get("voices", {}).items()}

    names = {
        Speaker.A: config.candidate_a.name,
        Speaker.B: config.candidate_b.name,
        Speaker.MODERATOR: "MODERADOR",
    }

    # Print debate header
    click.echo(f"\n\033[1m{'=' * 60}")
    click.echo(f"  DEBATE: {config.topic}")
    click.echo(f"{'=' * 60}\033[0m")
    click.echo(f"  A        : {config.candidate_a.name} ({config.candidate_a.party})")
    click.echo(f"  B        : {config.candidate_b.name} ({config.candidate_b.party})")
    click.echo(f"  Voter    : {config.voter.name}")
    click.echo(f"  Rounds   : {total_rounds}")
    click.echo(f"  Provider : {provider.name}/{provider.model}")

    async def _run() -> None:
        nonlocal config
        store: StatsDatabase | None = None
        if not no_db:
            db_path = cfg.get("database", {}).get("path", "data/stats.db")
            store = StatsDatabase(db_path)
            await store.connect()

        try:
            if enrich:
                researcher = ProfileResearcher(
                    provider, invoker=invoker, **_agent_kwargs(cfg, "researcher")
                )
                config = await _enrich_missing_profiles(config, researcher)

            def _on_audio(msg: Message, pcm: bytes) -> None:
                write_wav(Path(audio_dir) / f"{len(session.transcript):02d}_{msg.id}.wav", pcm)

            async def _stop_early() -> None:
                if session.status is SessionStatus.DEBATE:
                    await session.stop()

            stop_tasks: list[asyncio.Task[None]] = []

            def _on_message(msg: Message) -> None:
                _print_message(msg, names)
                if stop_after is not None and session.turn_counter >= stop_after and not stop_tasks:
                    stop_tasks.append(asyncio.get_running_loop().create_task(_stop_early()))

            def _on_status(status: SessionStatus) -> None:
                if status is SessionStatus.EVALUATING:
                    click.echo(f"\n  Evaluating for {config.voter.name} …")

            session = DebateSession(
                orchestrator,
                judge,
                counter_store=store,
                speech=speech,
                audio_enabled=audio_enabled,
                voices=voices,
                pacing=pacing,
                on_message=_on_message,
                on_status_change=_on_status,
                on_audio=_on_audio,
            )
            await session.enter_arena()
            await session.start(config)
            result = await session.wait_finished()

            _print_scorecard(result, config)

            metrics = compute_transcript_metrics(session.transcript, FALLBACK_TEXTS)
            click.echo()
            click.echo("  Participation:")
            for speaker, count in metrics.candidate_turns.items():
                click.echo(
                    f"    {names[Speaker(speaker)]:25s}: {count} turns, "
                    f"{metrics.avg_words[speaker]:.0f} words avg"
                )
            if metrics.degraded_turns:
                click.echo(f"    Degraded turns           : {metrics.degraded_turns}")

            check = DebateValidator().validate_transcript(session.transcript, session.turn_counter)
            for issue in check.issues:
                click.echo(f"  \033[1;31mWarning: {issue}\033[0m")

            viz = DebateVisualizer(output_dir)
            paths = viz.generate_all(
                str(session.session_id),
                session.transcript,
                result,
                metrics,
                config.candidate_a,
                config.candidate_b,
                topic=config.topic,
            )
            click.echo(f"\n  Outputs saved to: {viz.output_dir}/")
            for p in paths:
                click.echo(f"    - {p.name}")
        finally:
            if store:
                await store.close()

    asyncio.run(_run())


# ---- research -------------------------------------------------------------

@cli.command()
@click.option("--name", required=True, help="Politician to research")
@click.option("--provider", "provider_name", help="Override the configured provider")
@click.pass_context
def research(ctx: click.Context, name: str, provider_name: str | None) -> None:
    """Draft a candidate profile from a web-grounded search."""
    cfg = ctx.obj["config"]
    provider = _build_provider(cfg, provider_name)
    researcher = ProfileResearcher(
        provider, invoker=_build_invoker(cfg), **_agent_kwargs(cfg, "researcher")
    )
    profile = asyncio.run(researcher.enrich(name))
    click.echo(profile)


# ---- stats ----------------------------------------------------------------

@cli.command()
@click.pass_context
def stats(ctx: click.Context) -> None:
    """Show usage counters (active users, debates started)."""
    cfg = ctx.obj["config"]

    async def _run() -> None:
        db_path = cfg.get("database", {}).get("path", "data/stats.db")
        store = StatsDatabase(db_path)
        await store.connect()
        try:
            platform = await store.get_stats()
            click.echo(f"Active users (24h): {platform.active_users}")
            click.echo(f"Debates started   : {platform.total_debates}")
        finally:
            await store.close()

    asyncio.run(_run())


# ---------------------------------------------------------------------------

if __name__ == "__main__":
    cli()
