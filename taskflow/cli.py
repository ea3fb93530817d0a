#!/usr/bin/env python3
"""taskflow CLI entrypoint."""

import sys
import argparse
import logging
from pathlib import Path

from taskflow.lib.config import Project, load_project
from taskflow.lib.errors import TaskflowError, TaskNotFound
from taskflow.lib.models import NOTE_TYPES, TaskStatus
from taskflow.runner.validation import get_last_validation_status
from taskflow.store.store import (
    calculate_progress_stats,
    find_task_location,
    load_task_file_content,
    load_tasks_progress,
)
from taskflow.workflow import lifecycle, tracking
from taskflow.workflow.deps import dependents_of, unmet_dependencies
from taskflow.workflow.fsm import RESUME_TARGETS
from taskflow.workflow.scheduler import find_active_task, find_next_available_task, resolve_task


def get_project(args) -> Project:
    return load_project(Path(args.root) if args.root else Path.cwd())


def cmd_status(args) -> int:
    project = get_project(args)
    progress = load_tasks_progress(project.paths.tasks_dir)

    if args.id:
        location = resolve_task(progress, args.id)
        content = load_task_file_content(project.paths.tasks_dir, progress, args.id)
        print(f"Task {content.id}: {content.title}")
        print(f"  Status:   {content.status}")
        print(f"  Story:    {location.story.id} {location.story.title} ({location.story.status})")
        print(f"  Feature:  {location.feature.id} {location.feature.title} ({location.feature.status})")
        if content.blocked_reason:
            print(f"  Blocked:  {content.blocked_reason}")
        if content.previous_status:
            print(f"  Previous: {content.previous_status}")
        if location.task.dependencies:
            print(f"  Depends:  {', '.join(location.task.dependencies)}")
        for subtask in content.subtasks:
            mark = "x" if subtask.status == "completed" else " "
            print(f"  [{mark}] {subtask.id} {subtask.description}")
        last = get_last_validation_status(project.paths.logs_dir, content.id)
        if last:
            outcome = "passed" if last.passed else f"failed ({', '.join(last.failed_checks)})"
            print(f"  Checks:   {outcome} at {last.timestamp}")
        return 0

    stats = calculate_progress_stats(progress)
    print(f"Project: {progress.project}")
    print(f"  Features: {stats.completed_features}/{stats.total_features}")
    print(f"  Stories:  {stats.completed_stories}/{stats.total_stories}")
    print(f"  Tasks:    {stats.completed_tasks}/{stats.total_tasks}")

    active = find_active_task(progress)
    if active:
        print(f"\nActive: {active.task.id} {active.task.title} [{active.task.status}]")
    else:
        print("\nNo active task")
    return 0


def cmd_next(args) -> int:
    project = get_project(args)
    progress = load_tasks_progress(project.paths.tasks_dir)

    found = find_next_available_task(progress, include_intermittent=args.intermittent)
    if found is None:
        print("No available tasks")
        return 0

    print(f"Next: {found.task.id} {found.task.title} [{found.task.status}]")
    print(f"  Story:   {found.story.id} {found.story.title}")
    print(f"  Feature: {found.feature.id} {found.feature.title}")
    if found.task.status == TaskStatus.NOT_STARTED.value:
        print(f"\nRun: taskflow start {found.task.id}")
    return 0


def cmd_start(args) -> int:
    project = get_project(args)
    result = lifecycle.start_task(project, args.id)
    if result.branch and result.branch.switched:
        print(f"Switched to branch {result.branch.expected}")
    print(f"Task {result.task_id} started [{result.status}]")
    return 0


def cmd_check(args) -> int:
    """Advance the active task one stage, running checks from validating."""
    project = get_project(args)
    result = lifecycle.advance_task(project, args.task)

    if result.validation is not None:
        for check in result.validation.results:
            outcome = "passed" if check.success else f"FAILED (exit {check.exit_code})"
            print(f"  {check.label}: {outcome}")
        lifecycle.assert_validation_passed(result.validation, project.paths.logs_dir)

    print(f"Task {result.task_id}: {result.from_status} -> {result.to_status}")
    return 0


def cmd_block(args) -> int:
    project = get_project(args)
    location = lifecycle.block_task(project, args.reason, args.task)
    print(f"Task {location.task.id} blocked: {args.reason}")
    return 0


def cmd_hold(args) -> int:
    project = get_project(args)
    location = lifecycle.hold_task(project, args.reason, args.task)
    print(f"Task {location.task.id} on hold")
    return 0


def cmd_resume(args) -> int:
    project = get_project(args)
    result = lifecycle.resume_task(project, args.task, args.status)
    print(f"Task {result.task_id} resumed [{result.status}]")
    return 0


def cmd_back(args) -> int:
    project = get_project(args)
    location = lifecycle.back_task(project, args.task)
    print(f"Task {location.task.id} moved back to {location.task.status}")
    return 0


def cmd_abort(args) -> int:
    project = get_project(args)
    location = lifecycle.abort_task(project, args.task)
    print(f"Task {location.task.id} aborted [{location.task.status}]")
    return 0


def cmd_note(args) -> int:
    project = get_project(args)
    progress = load_tasks_progress(project.paths.tasks_dir)
    location = resolve_task(progress, args.task)
    tracking.add_note(project.paths.tasks_dir, progress, location.task.id, args.text, args.type)
    print(f"Note added to task {location.task.id}")
    return 0


def cmd_subtask(args) -> int:
    project = get_project(args)
    progress = load_tasks_progress(project.paths.tasks_dir)
    location = resolve_task(progress, args.task)
    status = "pending" if args.pending else "completed"
    tracking.update_subtask_status(project.paths.tasks_dir, progress, location.task.id, args.subtask_id, status)
    print(f"Subtask {args.subtask_id} of task {location.task.id} -> {status}")
    return 0


def cmd_time(args) -> int:
    project = get_project(args)
    tasks_dir = project.paths.tasks_dir
    progress = load_tasks_progress(tasks_dir)
    task_id = resolve_task(progress, args.task).task.id

    if args.estimate is not None:
        tracking.set_estimate(tasks_dir, progress, task_id, args.estimate)
        print(f"Estimate for {task_id}: {args.estimate}h")
    elif args.start:
        tracking.start_timer(tasks_dir, progress, task_id, args.note)
        print(f"Timer started for {task_id}")
    elif args.stop:
        entry = tracking.stop_timer(tasks_dir, progress, task_id)
        print(f"Timer stopped for {task_id}: {entry.hours}h")
    elif args.log is not None:
        tracking.log_time(tasks_dir, progress, task_id, args.log, args.note)
        print(f"Logged {args.log}h on {task_id}")
    else:
        content = load_task_file_content(tasks_dir, progress, task_id)
        print(f"Task {task_id}")
        print(f"  Estimated: {content.estimated_hours if content.estimated_hours is not None else '-'}h")
        print(f"  Actual:    {content.actual_hours or 0}h")
        if tracking.running_entry(content):
            print("  Timer running")
    return 0


def cmd_deps(args) -> int:
    project = get_project(args)
    progress = load_tasks_progress(project.paths.tasks_dir)
    location = find_task_location(progress, args.id)
    if location is None:
        raise TaskNotFound(args.id)

    task = location.task
    unmet = set(unmet_dependencies(progress, task))
    print(f"Task {task.id}: {task.title}")
    print("  Depends on:")
    for dep_id in task.dependencies or []:
        print(f"    {dep_id} {'(unmet)' if dep_id in unmet else '(completed)'}")
    if not task.dependencies:
        print("    (none)")
    print("  Required by:")
    dependents = dependents_of(progress, task.id)
    for dependent in dependents:
        print(f"    {dependent.id} {dependent.title} [{dependent.status}]")
    if not dependents:
        print("    (none)")
    return 0


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(prog='taskflow', description='Task progression engine')
    parser.add_argument('--root', '-r', help='Project root (default: current directory)')
    parser.add_argument('--verbose', '-v', action='store_true', help='Debug logging')
    subparsers = parser.add_subparsers(dest='command', required=True)

    # taskflow status
    p_status = subparsers.add_parser('status', help='Show project or task status')
    p_status.add_argument('id', nargs='?', help='Task ID (project summary if omitted)')
    p_status.set_defaults(func=cmd_status)

    # taskflow next
    p_next = subparsers.add_parser('next', help='Show the next task to work on')
    p_next.add_argument('--intermittent', '-i', action='store_true', help='Include intermittent tasks')
    p_next.set_defaults(func=cmd_next)

    # taskflow start
    p_start = subparsers.add_parser('start', help='Start a task')
    p_start.add_argument('id', help='Task ID (e.g., 1.2.3)')
    p_start.set_defaults(func=cmd_start)

    # taskflow check
    p_check = subparsers.add_parser('check', help='Advance the active task (runs checks when validating)')
    p_check.add_argument('--task', '-t', help='Task ID (uses active task if not specified)')
    p_check.set_defaults(func=cmd_check)

    # taskflow block
    p_block = subparsers.add_parser('block', help='Block the active task')
    p_block.add_argument('reason', help='Why the task is blocked')
    p_block.add_argument('--task', '-t', help='Task ID (uses active task if not specified)')
    p_block.set_defaults(func=cmd_block)

    # taskflow hold
    p_hold = subparsers.add_parser('hold', help='Put the active task on hold')
    p_hold.add_argument('reason', nargs='?', help='Optional reason')
    p_hold.add_argument('--task', '-t', help='Task ID (uses active task if not specified)')
    p_hold.set_defaults(func=cmd_hold)

    # taskflow resume
    p_resume = subparsers.add_parser('resume', help='Resume a blocked or on-hold task')
    p_resume.add_argument('status', nargs='?', choices=RESUME_TARGETS, help='Status to resume into')
    p_resume.add_argument('--task', '-t', help='Task ID (first paused task if not specified)')
    p_resume.set_defaults(func=cmd_resume)

    # taskflow back
    p_back = subparsers.add_parser('back', help='Move the active task back one stage')
    p_back.add_argument('--task', '-t', help='Task ID (uses active task if not specified)')
    p_back.set_defaults(func=cmd_back)

    # taskflow abort
    p_abort = subparsers.add_parser('abort', help='Abandon the active task')
    p_abort.add_argument('--task', '-t', help='Task ID (uses active task if not specified)')
    p_abort.set_defaults(func=cmd_abort)

    # taskflow note
    p_note = subparsers.add_parser('note', help='Add a note to a task')
    p_note.add_argument('text', help='Note text')
    p_note.add_argument('--type', default='note', choices=NOTE_TYPES, help='Note type')
    p_note.add_argument('--task', '-t', help='Task ID (uses active task if not specified)')
    p_note.set_defaults(func=cmd_note)

    # taskflow subtask
    p_subtask = subparsers.add_parser('subtask', help='Complete (or reopen) a subtask')
    p_subtask.add_argument('subtask_id', help='Subtask ID')
    p_subtask.add_argument('--pending', action='store_true', help='Mark as pending instead')
    p_subtask.add_argument('--task', '-t', help='Task ID (uses active task if not specified)')
    p_subtask.set_defaults(func=cmd_subtask)

    # taskflow time
    p_time = subparsers.add_parser('time', help='Track time on a task')
    p_time.add_argument('--task', '-t', help='Task ID (uses active task if not specified)')
    p_time_action = p_time.add_mutually_exclusive_group()
    p_time_action.add_argument('--start', action='store_true', help='Start a timer')
    p_time_action.add_argument('--stop', action='store_true', help='Stop the running timer')
    p_time_action.add_argument('--log', type=float, metavar='HOURS', help='Log hours worked')
    p_time_action.add_argument('--estimate', type=float, metavar='HOURS', help='Set the estimate')
    p_time.add_argument('--note', help='Note for the time entry')
    p_time.set_defaults(func=cmd_time)

    # taskflow deps
    p_deps = subparsers.add_parser('deps', help='Show dependencies and dependents of a task')
    p_deps.add_argument('id', help='Task ID')
    p_deps.set_defaults(func=cmd_deps)

    args = parser.parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )

    try:
        return args.func(args)
    except TaskflowError as e:
        print(f"ERROR: {e.message}", file=sys.stderr)
        if e.recovery_hint:
            print(f"  {e.recovery_hint}", file=sys.stderr)
        return 1
    except ValueError as e:
        print(f"ERROR: {e}", file=sys.stderr)
        return 1


if __name__ == '__main__':
    sys.exit(main())
