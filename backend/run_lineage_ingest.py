#!/usr/bin/env python3
"""
Lineage Ingest
==============

Feeds a file of texts through the lineage core and prints the resulting
families as JSON.

Usage:
    python run_lineage_ingest.py claims.txt                 # one text per line
    python run_lineage_ingest.py claims.jsonl --jsonl       # {"text": ..., "source": ...}
    python run_lineage_ingest.py claims.txt --threshold 0.5 --max-depth 6
    python run_lineage_ingest.py claims.txt --trees         # include nested trees
    python run_lineage_ingest.py claims.txt --analyze       # include pattern reports

Settings not given on the command line come from LINEAGE_* environment
variables or .env.
"""

import argparse
import json
import logging
import sys
from collections import Counter
from pathlib import Path
from typing import Iterator, List, Optional, Tuple

from dotenv import load_dotenv

from lineage import (
    CapacityError,
    ClassifyHints,
    LineageService,
    LineageSettings,
    ValidationError,
)

env_path = Path(__file__).parent.parent / '.env'
load_dotenv(env_path)

log = logging.getLogger('lineage-ingest')


def read_items(path: Path, jsonl: bool) -> Iterator[Tuple[str, Optional[str]]]:
    """Yield (text, source) pairs, skipping blank lines."""
    with path.open(encoding='utf-8') as f:
        for line in f:
            line = line.strip()
            if not line:
                continue
            if jsonl:
                record = json.loads(line)
                yield record['text'], record.get('source')
            else:
                yield line, None


def build_settings(args) -> LineageSettings:
    overrides = {}
    if args.threshold is not None:
        overrides['similarity_threshold'] = args.threshold
    if args.max_depth is not None:
        overrides['max_tree_depth'] = args.max_depth
    if args.max_children is not None:
        overrides['max_children_per_node'] = args.max_children
    return LineageSettings(**overrides)


def ingest_file(service: LineageService, path: Path, jsonl: bool) -> Counter:
    outcomes = Counter()
    for text, source in read_items(path, jsonl):
        try:
            result = service.ingest(text, ClassifyHints(source=source))
        except ValidationError as e:
            log.warning(f"Skipping invalid content: {e}")
            outcomes['invalid'] += 1
            continue
        except CapacityError as e:
            log.warning(f"Rejected by tree limits: {e}")
            outcomes['rejected'] += 1
            continue
        outcomes[result.decision.decision.value] += 1
    return outcomes


def build_report(service: LineageService, outcomes: Counter, trees: bool, analyze: bool) -> dict:
    store = service.store
    families: List[dict] = []
    for summary in store.list_families():
        entry = {
            'family_id': summary.family_id,
            'root': summary.root_content,
            'total_nodes': summary.total_nodes,
            'max_depth': summary.max_depth,
        }
        if trees:
            entry['tree'] = store.get_family_tree(summary.family_id).tree
        if analyze:
            entry['patterns'] = store.analyze_mutation_patterns(summary.family_id).as_dict()
        families.append(entry)

    return {
        'decisions': dict(outcomes),
        'genealogy': store.get_genealogy_metrics(),
        'families': families,
        'similarity_cache': service.engine.cache_stats(),
    }


def main(argv: Optional[List[str]] = None) -> int:
    parser = argparse.ArgumentParser(description='Ingest texts into misinformation families')
    parser.add_argument('input', type=Path, help='Text file (one item per line) or JSONL')
    parser.add_argument('--jsonl', action='store_true', help='Input lines are JSON objects')
    parser.add_argument('--threshold', type=float, help='Similarity threshold override')
    parser.add_argument('--max-depth', type=int, help='Maximum tree depth override')
    parser.add_argument('--max-children', type=int, help='Maximum children per node override')
    parser.add_argument('--trees', action='store_true', help='Include nested family trees')
    parser.add_argument('--analyze', action='store_true', help='Include mutation pattern reports')
    parser.add_argument('--verbose', '-v', action='store_true', help='Debug logging')
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format='%(asctime)s [%(name)s] %(levelname)s: %(message)s'
    )

    if not args.input.exists():
        log.error(f"Input file not found: {args.input}")
        return 1

    service = LineageService(build_settings(args))
    outcomes = ingest_file(service, args.input, args.jsonl)
    log.info(f"Ingested {sum(outcomes.values())} items: {dict(outcomes)}")

    report = build_report(service, outcomes, args.trees, args.analyze)
    json.dump(report, sys.stdout, indent=2, default=str)
    sys.stdout.write('\n')
    return 0


if __name__ == '__main__':
    sys.exit(main())
