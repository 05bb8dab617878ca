# LifeMap/cli.py

import argparse
import asyncio
import json
import logging
import sys
from pathlib import Path
from typing import List, Optional

from dotenv import load_dotenv
from pydantic import ValidationError

from LifeMap.app_state import InvalidTransitionError, LifeMapApp, NoExperiencesFoundError
from LifeMap.config import Settings
from LifeMap.database import RecordStore
from LifeMap.flight import InFlightError
from LifeMap.insight.gateway import InsightError, InvalidUrlError
from LifeMap.insight.report import category_distribution
from LifeMap.models import Experience, ExperienceDraft, UserProfile
from LifeMap.timeline.attachments import AttachmentTooLargeError
from LifeMap.timeline.lifecycle import InvalidDraftError
from LifeMap.timeline.quick_add import CARDS, CARDS_BY_ID

log = logging.getLogger("LifeMap.cli")

LOG_FORMAT = "%(asctime)s | %(levelname)-8s | %(name)-20s | %(funcName)-25s | %(message)s"
RETRY_MESSAGE = "요청을 처리하지 못했습니다. 잠시 후 다시 시도해주세요."

# Errors whose message is shown to the user as-is.
USER_FACING_ERRORS = (
    InvalidDraftError,
    AttachmentTooLargeError,
    InvalidUrlError,
    NoExperiencesFoundError,
    InFlightError,
    InvalidTransitionError,
)


def _confirm(prompt: str, assume_yes: bool) -> bool:
    if assume_yes:
        return True
    answer = input(f"{prompt} [y/N] ").strip().lower()
    return answer in ("y", "yes")


def _require_profile(app: LifeMapApp) -> bool:
    if app.profile is None:
        print("프로필이 없습니다. 먼저 `lifemap profile` 로 프로필을 만들어주세요.")
        return False
    return True


def _format_experience(exp: Experience) -> str:
    period = exp.start_date if exp.start_date == exp.end_date else f"{exp.start_date} ~ {exp.end_date}"
    return f"[{exp.id}] {period} | {exp.title} ({exp.category}, {exp.emotion}, 만족도 {exp.satisfaction})"


def _add_draft_arguments(parser: argparse.ArgumentParser, required: bool) -> None:
    parser.add_argument("--title", required=required, help="Experience title.")
    parser.add_argument("--description", required=required, help="What happened and what you did.")
    parser.add_argument("--start", dest="start_date", help="Start date YYYY.MM.DD (default: today).")
    parser.add_argument("--end", dest="end_date", help="End date YYYY.MM.DD (default: start date).")
    parser.add_argument("--category", help="Category, or 'custom' together with --custom-category.")
    parser.add_argument("--custom-category")
    parser.add_argument("--emotion", help="Emotion, or 'custom' together with --custom-emotion.")
    parser.add_argument("--custom-emotion")
    parser.add_argument("--satisfaction", type=int, help="Satisfaction 1-10.")
    parser.add_argument("--attach", type=Path, nargs="*", default=[], help="Files to attach (10MB each at most).")


def _draft_from_args(args_ns) -> ExperienceDraft:
    fields = (
        "title", "description", "start_date", "end_date", "category",
        "custom_category", "emotion", "custom_emotion", "satisfaction",
    )
    # Only explicitly given options count as set, so edit leaves the rest untouched.
    return ExperienceDraft(**{f: getattr(args_ns, f) for f in fields if getattr(args_ns, f) is not None})


async def _attach_all(app: LifeMapApp, draft: ExperienceDraft, paths: List[Path]) -> ExperienceDraft:
    for path in paths:
        draft = await app.attach(draft, path, slot=str(path))
    return draft


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="lifemap",
        description="LifeMap: Personal life-experience journal and self-insight CLI"
    )
    parser.add_argument("--debug", action="store_true", help="Enable debug logging for all LifeMap modules.")
    parser.add_argument("--db", type=Path, default=None, help="Path of the DuckDB storage file.")
    subparsers = parser.add_subparsers(dest="command", title="Available Commands", required=True)

    # --- Profile ---
    parser_profile = subparsers.add_parser("profile", help="Show or create the user profile.")
    parser_profile.add_argument("--name")
    parser_profile.add_argument("--birth-year", type=int)
    parser_profile.add_argument("--status", help="e.g. 대학생 3학년")

    def handle_profile(args_ns, app: LifeMapApp):
        if args_ns.name is None and args_ns.birth_year is None and args_ns.status is None:
            if app.profile is None:
                print("프로필이 없습니다. --name, --birth-year, --status 로 생성하세요.")
            else:
                print(f"{app.profile.name} ({app.profile.birth_year}년생, {app.profile.status})")
            return
        if app.profile is not None:
            print("프로필은 초기화(reset) 후에만 다시 만들 수 있습니다.")
            return
        profile = UserProfile(name=args_ns.name or "", birth_year=args_ns.birth_year or 0, status=args_ns.status or "")
        app.complete_profile(profile)
        log.info(f"CLI: Profile saved for {profile.name}")
    parser_profile.set_defaults(func=handle_profile)

    # --- Add / Edit ---
    parser_add = subparsers.add_parser("add", help="Record a new experience.")
    _add_draft_arguments(parser_add, required=True)

    def handle_add(args_ns, app: LifeMapApp):
        draft = asyncio.run(_attach_all(app, _draft_from_args(args_ns), args_ns.attach))
        experience = app.lifecycle.create(draft)
        print(_format_experience(experience))
    parser_add.set_defaults(func=handle_add)

    parser_edit = subparsers.add_parser("edit", help="Change fields of an existing experience.")
    parser_edit.add_argument("id")
    _add_draft_arguments(parser_edit, required=False)

    def handle_edit(args_ns, app: LifeMapApp):
        draft = _draft_from_args(args_ns)
        if args_ns.attach:
            current = app.lifecycle.get(args_ns.id)
            existing = list(current.attachments) if current else []
            draft = asyncio.run(_attach_all(app, draft.model_copy(update={"attachments": existing}), args_ns.attach))
        updated = app.lifecycle.update(args_ns.id, draft)
        if updated is None:
            print(f"경험을 찾을 수 없습니다: {args_ns.id}")
            return
        print(_format_experience(updated))
    parser_edit.set_defaults(func=handle_edit)

    # --- Timeline views ---
    parser_list = subparsers.add_parser("list", help="Show the timeline grouped by year.")
    parser_list.add_argument("--year", type=int, help="Only show this year.")

    def handle_list(args_ns, app: LifeMapApp):
        if not _require_profile(app):
            return
        organizer = app.organizer()
        years = [args_ns.year] if args_ns.year is not None else organizer.year_range()
        for year in years:
            bucket = organizer.by_year(year)
            if not bucket and args_ns.year is None:
                continue
            print(f"== {year} ({organizer.age_in(year)}세) ==")
            for exp in bucket:
                print(f"  {_format_experience(exp)}")
    parser_list.set_defaults(func=handle_list)

    parser_trash = subparsers.add_parser("trash", help="Show trashed experiences, most recently deleted first.")

    def handle_trash(args_ns, app: LifeMapApp):
        if not _require_profile(app):
            return
        organizer = app.organizer()
        for exp in organizer.trashed_experiences:
            print(f"{exp.deleted_at:%Y.%m.%d %H:%M} | {_format_experience(exp)}")
    parser_trash.set_defaults(func=handle_trash)

    # --- Lifecycle ---
    parser_delete = subparsers.add_parser("delete", help="Move an experience to the trash.")
    parser_delete.add_argument("id")

    def handle_delete(args_ns, app: LifeMapApp):
        if app.lifecycle.soft_delete(args_ns.id) is None:
            print(f"경험을 찾을 수 없습니다: {args_ns.id}")
    parser_delete.set_defaults(func=handle_delete)

    parser_restore = subparsers.add_parser("restore", help="Bring an experience back from the trash.")
    parser_restore.add_argument("id")

    def handle_restore(args_ns, app: LifeMapApp):
        if app.lifecycle.restore(args_ns.id) is None:
            print(f"경험을 찾을 수 없습니다: {args_ns.id}")
    parser_restore.set_defaults(func=handle_restore)

    parser_purge = subparsers.add_parser("purge", help="Permanently delete an experience.")
    parser_purge.add_argument("id")
    parser_purge.add_argument("--yes", action="store_true", help="Skip the confirmation prompt.")

    def handle_purge(args_ns, app: LifeMapApp):
        pending = app.request_purge(args_ns.id)
        if not _confirm("정말로 영구 삭제하시겠습니까? 이 작업은 되돌릴 수 없습니다.", args_ns.yes):
            pending.cancel()
            print("취소되었습니다.")
            return
        if not pending.confirm():
            print(f"경험을 찾을 수 없습니다: {args_ns.id}")
    parser_purge.set_defaults(func=handle_purge)

    parser_reset = subparsers.add_parser("reset", help="Delete the profile and every experience.")
    parser_reset.add_argument("--yes", action="store_true", help="Skip the confirmation prompt.")

    def handle_reset(args_ns, app: LifeMapApp):
        pending = app.request_reset()
        if not _confirm("모든 데이터를 삭제하고 처음부터 다시 시작하시겠습니까?", args_ns.yes):
            pending.cancel()
            print("취소되었습니다.")
            return
        pending.confirm()
        print("초기화되었습니다.")
    parser_reset.set_defaults(func=handle_reset)

    # --- Quick add ---
    parser_cards = subparsers.add_parser("cards", help="List the '이런 적 있어?' situation cards.")

    def handle_cards(args_ns, app: LifeMapApp):
        for card in CARDS:
            print(f"{card.id:>4} | {card.question}")
    parser_cards.set_defaults(func=handle_cards)

    parser_add_cards = subparsers.add_parser("add-cards", help="Create one experience per selected card.")
    parser_add_cards.add_argument("card_ids", nargs="+")

    def handle_add_cards(args_ns, app: LifeMapApp):
        unknown = [c for c in args_ns.card_ids if c not in CARDS_BY_ID]
        if unknown:
            print(f"알 수 없는 카드입니다: {', '.join(unknown)}", file=sys.stderr)
            return 1
        for exp in app.add_cards(args_ns.card_ids):
            print(_format_experience(exp))
    parser_add_cards.set_defaults(func=handle_add_cards)

    # --- Imports ---
    parser_import_file = subparsers.add_parser("import-file", help="Extract experiences from a resume or portfolio file.")
    parser_import_file.add_argument("path", type=Path)

    def handle_import_file(args_ns, app: LifeMapApp):
        created = asyncio.run(app.import_file(args_ns.path))
        print(f"{len(created)}개의 경험을 가져왔습니다.")
        for exp in created:
            print(f"  {_format_experience(exp)}")
    parser_import_file.set_defaults(func=handle_import_file)

    parser_import_url = subparsers.add_parser("import-url", help="Extract experiences from a portfolio web page.")
    parser_import_url.add_argument("url")

    def handle_import_url(args_ns, app: LifeMapApp):
        created = asyncio.run(app.import_url(args_ns.url))
        print(f"{len(created)}개의 경험을 가져왔습니다.")
        for exp in created:
            print(f"  {_format_experience(exp)}")
    parser_import_url.set_defaults(func=handle_import_url)

    # --- Analysis ---
    parser_analyze = subparsers.add_parser("analyze", help="Generate the self-insight report.")
    parser_analyze.add_argument("--graph-out", type=Path, help="Write the settled relationship graph layout as JSON.")
    parser_analyze.add_argument("--seed", type=int, default=None, help="Seed for the layout's jitter.")

    def handle_analyze(args_ns, app: LifeMapApp):
        if not any(not e.is_trashed for e in app.experiences):
            print("분석할 경험이 없습니다. 먼저 경험을 기록해주세요.")
            return
        result = asyncio.run(app.analyze())
        if result is None:
            return
        print(f"요약: {result.summary}")
        print(f"강점: {', '.join(result.strengths)}")
        print(f"흥미: {', '.join(result.interests)}")
        print(f"문제 해결 스타일: {result.problem_solving_style}")
        print(f"에너지 방향: {result.energy_direction}")
        print("액션 플랜:")
        for i, action in enumerate(result.action_plan):
            print(f"  {i}. {action}")
        print("카테고리 분포:")
        for category, count in category_distribution(app.experiences).items():
            print(f"  {category}: {count}")
        if args_ns.graph_out:
            simulation = app.graph_simulation(seed=args_ns.seed)
            frame = simulation.run()
            simulation.stop()
            payload = {
                "nodes": [{"id": node_id, "x": x, "y": y} for node_id, (x, y) in frame.nodes.items()],
                "edges": [edge._asdict() for edge in frame.edges],
            }
            args_ns.graph_out.write_text(json.dumps(payload, ensure_ascii=False, indent=2), encoding="utf-8")
            log.info(f"CLI: Graph layout written to {args_ns.graph_out} after {frame.tick} ticks")
    parser_analyze.set_defaults(func=handle_analyze)

    parser_checklist = subparsers.add_parser("checklist", help="Generate a checklist for one action-plan item.")
    parser_checklist.add_argument("action", help="Action-plan text.")

    def handle_checklist(args_ns, app: LifeMapApp):
        items = asyncio.run(app.gateway.generate_checklist(args_ns.action, app.experiences))
        for item in items:
            print(f"- [ ] {item}")
    parser_checklist.set_defaults(func=handle_checklist)

    return parser


def main(argv: Optional[List[str]] = None, app: Optional[LifeMapApp] = None) -> int:
    load_dotenv()
    logging.basicConfig(format=LOG_FORMAT, level=logging.INFO)

    parser = build_parser()
    args = parser.parse_args(argv)

    if args.debug:
        logging.getLogger("LifeMap").setLevel(logging.DEBUG)
        log.debug("Debug logging enabled via CLI.")

    if app is None:
        settings = Settings()
        app = LifeMapApp(store=RecordStore(args.db, settings), settings=settings)
    app.load()

    try:
        return args.func(args, app) or 0
    except USER_FACING_ERRORS as e:
        print(str(e), file=sys.stderr)
        return 1
    except ValidationError as e:
        print(f"입력값을 확인해주세요: {e.error_count()}개의 오류", file=sys.stderr)
        return 1
    except InsightError as e:
        log.error(f"CLI: Remote request failed: {e}")
        print(RETRY_MESSAGE, file=sys.stderr)
        return 1


if __name__ == "__main__":
    sys.exit(main())
