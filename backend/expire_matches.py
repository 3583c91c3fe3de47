"""CLI utility to expire scheduled matches whose time has passed."""

import argparse
import json

from backend.app import create_app
from backend.services.match_lifecycle import expire_overdue_matches
from backend.services.seeder import seed_achievements
from backend.time_utils import parse_iso_datetime


def _build_parser():
    parser = argparse.ArgumentParser(
        description='Expire every scheduled match whose scheduled time is in the past.',
    )
    parser.add_argument(
        '--env',
        default='development',
        choices=['development', 'testing', 'production'],
        help='App config environment to use (default: development).',
    )
    parser.add_argument(
        '--as-of',
        help='ISO timestamp to treat as "now" (default: current UTC time).',
    )
    parser.add_argument(
        '--seed-achievements',
        action='store_true',
        help='Also insert any missing achievement catalog entries.',
    )
    return parser


def main(argv=None):
    args = _build_parser().parse_args(argv)
    as_of = None
    if args.as_of:
        as_of = parse_iso_datetime(args.as_of)
        if as_of is None:
            raise SystemExit(f'Invalid --as-of timestamp: {args.as_of}')

    app = create_app(args.env)
    with app.app_context():
        result = {'expired': expire_overdue_matches(now=as_of)}
        if args.seed_achievements:
            result['achievements_seeded'] = seed_achievements()
        print(json.dumps(result, indent=2))
        return 0


if __name__ == '__main__':
    raise SystemExit(main())
