"""
Standard entry point for running the Satire Engine.

Usage:
    python run_satire_engine.py channels
    python run_satire_engine.py invoke db-create-project '{"name": "Demo", "created_by": "cli"}'
    python run_satire_engine.py health <project-id>
    python run_satire_engine.py strategy <project-id>
    python run_satire_engine.py chat CREATIVE_STRATEGIST --project <project-id>
"""
import argparse
import dataclasses
import json
import logging
import sys
import uuid
from pathlib import Path
from typing import Any, List, Optional

from satire_engine import SatireEngine, Settings
from satire_engine.api import ChannelRegistry
from satire_engine.core.enums import PersonaType
from satire_engine.core.errors import SatireEngineError
from satire_engine.services.project_director import summarize_health

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    handlers=[
        logging.StreamHandler(sys.stdout)
    ]
)
logger = logging.getLogger("satire_engine_cli")


def parse_argument(raw: str) -> Any:
    """Decode a channel argument as JSON, falling back to the raw string."""
    try:
        return json.loads(raw)
    except json.JSONDecodeError:
        return raw


def build_engine(data_dir: Optional[str], in_memory: bool) -> SatireEngine:
    settings = Settings.from_env()
    if data_dir:
        settings = dataclasses.replace(settings, data_dir=Path(data_dir))
    return SatireEngine(settings=settings, persist=not in_memory)


def run_invoke(engine: SatireEngine, channel: str, raw_args: List[str]) -> int:
    response = ChannelRegistry(engine).invoke(channel, *[parse_argument(a) for a in raw_args])
    print(response.model_dump_json(indent=2))
    return 0 if response.success else 1


def run_health(engine: SatireEngine, project_id: str) -> int:
    engine.director.initialize_for_project(project_id)
    health = engine.director.perform_health_check()
    print(summarize_health(health))
    return 0


def run_strategy(engine: SatireEngine, project_id: str) -> int:
    logger.info(f"Generating creative strategy for project {project_id}")
    strategy = engine.strategy.generate_creative_strategy(project_id)
    logger.info(f"Strategy {strategy.id} stored (v{strategy.version}, {strategy.status.value})")
    print(strategy.model_dump_json(indent=2))
    return 0


def run_chat(engine: SatireEngine, persona: str, project_id: Optional[str]) -> int:
    """Interactive chat with one persona until EOF or 'exit'."""
    persona = PersonaType(persona)
    conversation_id = f"cli_{persona.value}_{uuid.uuid4().hex[:8]}"
    context = {}
    if project_id:
        store = engine.datastore
        context = {
            "project_id": project_id,
            "project": store.get_project(project_id),
            "articles": store.get_articles_by_project(project_id),
            "existing_strategy": store.get_creative_strategy(project_id),
        }
        engine.director.initialize_for_project(project_id)

    print(f"Chatting with {persona.value}. Type 'exit' to stop.")
    for line in sys.stdin:
        message = line.strip()
        if not message:
            continue
        if message.lower() in ("exit", "quit"):
            break
        result = engine.llm.generate_response(conversation_id, persona, message, context)
        if not result.success:
            logger.error(result.error)
            continue
        print(f"\n{persona.value}: {result.response}\n")
        if result.handoff:
            logger.info(f"Ready for handoff: {result.handoff.stage}")
        for issue in result.quality_issues:
            logger.warning(f"Project Director: {issue.description}")
    return 0


def main():
    parser = argparse.ArgumentParser(description="Run the Satire Engine")
    parser.add_argument("--data-dir", help="Directory holding the datastore and agent settings")
    parser.add_argument("--in-memory", action="store_true", help="Do not read or write data files")
    subparsers = parser.add_subparsers(dest="command", required=True)

    subparsers.add_parser("channels", help="List available channels")

    invoke_parser = subparsers.add_parser("invoke", help="Invoke a channel; arguments are parsed as JSON")
    invoke_parser.add_argument("channel")
    invoke_parser.add_argument("args", nargs="*")

    health_parser = subparsers.add_parser("health", help="Project Director health check")
    health_parser.add_argument("project_id")

    strategy_parser = subparsers.add_parser("strategy", help="Generate a creative strategy from project articles")
    strategy_parser.add_argument("project_id")

    chat_parser = subparsers.add_parser("chat", help="Chat with a persona")
    chat_parser.add_argument("persona", choices=[p.value for p in PersonaType])
    chat_parser.add_argument("--project", help="Project id to load as context")

    args = parser.parse_args()

    try:
        engine = build_engine(args.data_dir, args.in_memory)
        if args.command == "channels":
            print("\n".join(ChannelRegistry(engine).channels))
            code = 0
        elif args.command == "invoke":
            code = run_invoke(engine, args.channel, args.args)
        elif args.command == "health":
            code = run_health(engine, args.project_id)
        elif args.command == "strategy":
            code = run_strategy(engine, args.project_id)
        else:
            code = run_chat(engine, args.persona, args.project)
    except (SatireEngineError, ValueError) as e:
        logger.error(f"Engine failed: {str(e)}")
        sys.exit(1)
    sys.exit(code)


if __name__ == "__main__":
    main()
