"""
Maintenance commands for student memory.

Usage:
    socratic-memory verify --student-ids s-1 s-2 s-3
    socratic-memory verify --roster-file students.txt
    socratic-memory clean --roster-file students.txt
    socratic-memory reset-student s-1
    socratic-memory reset-all --yes
    socratic-memory stats s-1
"""

import argparse
import asyncio
import json
import logging
import sys
from typing import List, Optional

from dotenv import load_dotenv

from socratic_memory.config import TutorSettings, build_embedding, build_vector_store
from socratic_memory.errors import SynchronizationDrift
from socratic_memory.memory_service import MemoryService
from socratic_memory.storage.records import StaticRoster

logger = logging.getLogger("socratic-memory")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="socratic-memory", description="Student memory maintenance"
    )
    parser.add_argument("--log-level", default=None, help="Override SOCRATIC_LOG_LEVEL")
    commands = parser.add_subparsers(dest="command", required=True)

    for name, help_text in (
        ("verify", "Compare the roster with memory collections"),
        ("clean", "Delete collections of students missing from the roster"),
    ):
        command = commands.add_parser(name, help=help_text)
        roster = command.add_mutually_exclusive_group(required=True)
        roster.add_argument("--student-ids", nargs="+", help="Active student IDs")
        roster.add_argument("--roster-file", help="File with one active student ID per line")

    reset_student = commands.add_parser("reset-student", help="Erase one student's memory")
    reset_student.add_argument("student_id")

    reset_all = commands.add_parser("reset-all", help="Erase every student's memory")
    reset_all.add_argument("--yes", action="store_true", help="Confirm the deletion")

    stats = commands.add_parser("stats", help="Show memory statistics for a student")
    stats.add_argument("student_id")

    return parser


def load_roster(args: argparse.Namespace) -> StaticRoster:
    if args.roster_file:
        return StaticRoster.from_file(args.roster_file)
    return StaticRoster(args.student_ids)


async def run(args: argparse.Namespace, service: MemoryService) -> int:
    if not service.is_available:
        logger.error(f"Vector store unavailable: {service.availability.reason}")
        return 2

    if args.command in ("verify", "clean"):
        roster = load_roster(args)
        report = await service.verify_synchronization(roster.list_active_student_ids())
        print(report.model_dump_json(indent=2))
        if not report.checked:
            return 2
        if report.in_sync:
            return 0
        if args.command == "clean":
            cleaned = await service.clean_orphaned_collections(
                report.orphaned, report.orphaned_collections
            )
            print(f"Cleaned {cleaned} orphaned collections")
            return 0
        drift = SynchronizationDrift(report.orphaned, report.missing)
        logger.warning(str(drift))
        return 1

    if args.command == "reset-student":
        ok = await service.reset_student_memory(args.student_id)
        print(f"Memory reset for {args.student_id}" if ok else "Reset failed")
        return 0 if ok else 1

    if args.command == "reset-all":
        if not args.yes:
            print("Refusing to delete all memory without --yes")
            return 1
        deleted = await service.reset_all_memory()
        print(f"Deleted {deleted} memory collections")
        return 0

    if args.command == "stats":
        stats = await service.get_student_memory_stats(args.student_id)
        print(json.dumps(stats.model_dump(), indent=2))
        return 0

    return 1


def main(argv: Optional[List[str]] = None) -> int:
    load_dotenv()
    args = build_parser().parse_args(argv)
    settings = TutorSettings()

    logging.basicConfig(
        level=(args.log_level or settings.log_level).upper(),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )

    embedding = build_embedding(settings)
    store = build_vector_store(settings, vector_size=embedding.dimension)
    service = MemoryService.initialize(store, embedding, settings)

    return asyncio.run(run(args, service))


if __name__ == "__main__":
    sys.exit(main())
