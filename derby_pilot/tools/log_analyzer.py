#!/usr/bin/env python3
import json
import argparse
import statistics
from datetime import datetime
from collections import Counter, defaultdict

def parse_args():
    parser = argparse.ArgumentParser(description="Analyze Derby Pilot session logs for health and game progress.")
    parser.add_argument("logfile", help="Path to the JSONL log file")
    parser.add_argument("--gap-threshold", type=float, default=5.0, help="Threshold in seconds to consider a pause between decisions significant (default 5s)")
    return parser.parse_args()

def summarize(lines, gap_threshold=5.0):
    """
    Collects the numbers reported by analyze_log from JSONL lines.

    Returns:
        dict, or None if no line carried a valid timestamp.
    """
    start_time = None
    last_decision = None
    goals = Counter()
    rejections = Counter()
    failures = Counter()
    errors = defaultdict(int)
    decisions = []
    gaps = []
    published = 0
    publish_failed = 0

    for line in lines:
        try:
            entry = json.loads(line)
            timestamp = datetime.fromisoformat(entry['timestamp'])
        except (ValueError, KeyError, TypeError):
            continue

        if start_time is None:
            start_time = timestamp
        end_time = timestamp

        event_type = entry.get('event', 'Unknown')
        level = entry.get('level', 'INFO')
        data = entry.get('data') or {}

        if level in ['ERROR', 'WARNING', 'CRITICAL']:
            errors[f"{entry.get('component')}:{event_type}"] += 1

        if event_type == 'DriveCommandDecided':
            goals[data.get('goal') or 'NONE'] += 1
            if last_decision:
                delta = (timestamp - last_decision).total_seconds()
                decisions.append(delta)
                if delta > gap_threshold:
                    gaps.append(delta)
            last_decision = timestamp
        elif event_type == 'ObservationRejected':
            rejections[data.get('reason', 'unknown')] += 1
        elif event_type == 'DecisionFailed':
            failures[data.get('kind', 'unknown')] += 1
        elif event_type == 'CommandPublished':
            published += 1
        elif event_type == 'PublishFailed':
            publish_failed += 1

    if start_time is None:
        return None

    return {
        "duration": (end_time - start_time).total_seconds(),
        "goals": goals,
        "rejections": rejections,
        "failures": failures,
        "errors": dict(errors),
        "decision_intervals": decisions,
        "gaps": gaps,
        "published": published,
        "publish_failed": publish_failed,
    }

def analyze_log(filepath, gap_threshold=5.0):
    print(f"--- Derby Pilot Log Analysis: {filepath} ---")

    try:
        with open(filepath, 'r') as f:
            lines = f.readlines()
    except OSError as e:
        print(f"Error opening file: {e}")
        return None

    if not lines:
        print("Log file is empty.")
        return None

    summary = summarize(lines, gap_threshold)
    if summary is None:
        print("No valid timestamps found.")
        return None

    # 1. Game Progress
    print(f"\n[Game Progress]")
    print(f"  Session Duration: {summary['duration']:.2f}s")
    goals = summary['goals']
    if goals:
        for goal, count in goals.most_common():
            print(f"    {goal}: {count}")
    else:
        print("  No driving decisions found.")
    if goals.get('GAME_END'):
        print("  Game finished.")

    # 2. Decision Rhythm
    print(f"\n[Decision Rhythm]")
    intervals = summary['decision_intervals']
    if intervals:
        print(f"  Avg Interval: {statistics.mean(intervals):.3f}s")
        print(f"  Max Interval: {max(intervals):.3f}s")
    print(f"  Pauses (> {gap_threshold}s): {len(summary['gaps'])}")

    # 3. Input Health
    print(f"\n[Input Health]")
    rejections = summary['rejections']
    if rejections:
        for reason, count in rejections.items():
            print(f"    Rejected ({reason}): {count}")
    else:
        print("  Rejected Messages: 0 (Clean)")
    for kind, count in summary['failures'].items():
        print(f"    Decision failed ({kind}): {count}")

    # 4. Output Health
    print(f"\n[Output Health]")
    print(f"  Commands Published: {summary['published']}")
    print(f"  Publish Failures:   {summary['publish_failed']}")

    # 5. System Health
    print(f"\n[System Health]")
    if summary['errors']:
        print(f"  Errors/Warnings: {sum(summary['errors'].values())}")
        for k, v in summary['errors'].items():
            print(f"    {k}: {v}")
    else:
        print(f"  Errors/Warnings: 0 (Clean)")

    return summary

if __name__ == "__main__":
    args = parse_args()
    analyze_log(args.logfile, args.gap_threshold)
