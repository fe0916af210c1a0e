import argparse
import random
from pathlib import Path

from name_tester.combinations import generate_combinations, prepare_display
from name_tester.config import COMBINATION_THRESHOLD, DEFAULT_SAMPLE_SIZE
from name_tester.names_parser import load_names


def main():
    parser = argparse.ArgumentParser(description="Print first x middle x last name combinations.")
    parser.add_argument("first", help="First names file (UTF-8, one per line, nicknames in brackets).")
    parser.add_argument("middle", help="Middle names file.")
    parser.add_argument("last", help="Last names file.")
    parser.add_argument("--search", default="", help="Only show combinations matching this text.")
    parser.add_argument("--hide-duplicates", action="store_true", help="Skip middle names that repeat the last name.")
    parser.add_argument("--random", action="store_true", help="Random order instead of alphabetical.")
    parser.add_argument("--all", action="store_true", help="Never sample, print every combination.")
    parser.add_argument("--short", action="store_true", help="Print nickname forms next to full names.")
    parser.add_argument("--seed", type=int, default=None, help="Seed for shuffling and sampling.")
    parser.add_argument("--threshold", type=int, default=COMBINATION_THRESHOLD, help=f"Sample above this many (default {COMBINATION_THRESHOLD}).")
    parser.add_argument("--sample-size", type=int, default=DEFAULT_SAMPLE_SIZE, help=f"Sample size (default {DEFAULT_SAMPLE_SIZE}).")
    args = parser.parse_args()

    combinations = generate_combinations(
        load_names(Path(args.first)),
        load_names(Path(args.middle)),
        load_names(Path(args.last)),
    )
    rng = random.Random(args.seed) if args.seed is not None else None
    view = prepare_display(
        combinations,
        search_term=args.search,
        hide_duplicates=args.hide_duplicates,
        alphabetical=not args.random,
        show_all=args.all,
        threshold=args.threshold,
        sample_size=args.sample_size,
        rng=rng,
    )

    for c in view.items:
        if args.short:
            print(f"{c.full_name}\t{c.initials}\t{c.short_name}\t{c.short_initials}")
        else:
            print(f"{c.full_name}\t{c.initials}")

    # Summary
    print(f"Combinations: {view.total}")
    print(f"Matching: {view.matched}")
    if view.sampled:
        print(f"Sampled: {len(view.items)} (use --all to print everything)")


if __name__ == "__main__":
    main()
