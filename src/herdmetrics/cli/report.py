"""
Herd analytics reports from a snapshot file.

Usage:
    herdmetrics fetch --url https://example.org/export.json
    herdmetrics kpis
    herdmetrics deps --trait yearling_weight --limit 20
    herdmetrics deps --elite
    herdmetrics animal 1234
    herdmetrics lineage 1234 --generations 4
    herdmetrics sires
    herdmetrics seasons --json
"""

import argparse
import asyncio
import json
import logging
from dataclasses import asdict, is_dataclass
from datetime import date, datetime, timedelta
from enum import Enum
from pathlib import Path

from herdmetrics.analysis import HerdMetricsService
from herdmetrics.core import SnapshotFetchError, format_gain, format_weight, settings
from herdmetrics.data import HerdSnapshot, SnapshotError, cache_snapshot, load_snapshot
from herdmetrics.data.snapshot import default_snapshot_path
from herdmetrics.genetics import TRAITS, get_cull_animals, get_elite_animals, rank_by_dep
from herdmetrics.growth import classify_gmd, estimate_weight_today, predict_slaughter_date
from herdmetrics.pedigree import calculate_progeny_stats, format_lineage_tree, get_lineage, get_progeny_summaries
from herdmetrics.reproduction import calculate_breeding_metrics, expected_calvings

# Skip re-download if the cached snapshot is younger than this
CACHE_FRESHNESS_HOURS = 24


def _jsonable(obj):
    if isinstance(obj, Enum):
        return obj.value
    if isinstance(obj, (date, datetime)):
        return obj.isoformat()
    if is_dataclass(obj):
        return asdict(obj)
    return str(obj)


def _print_json(data) -> None:
    print(json.dumps(data, indent=2, default=_jsonable, ensure_ascii=False))


def _load(path: str | None) -> HerdSnapshot | None:
    snapshot_path = Path(path) if path else default_snapshot_path()
    try:
        return load_snapshot(snapshot_path)
    except FileNotFoundError:
        print(f"Snapshot not found: {snapshot_path}")
        print("Run 'herdmetrics fetch' or pass --snapshot")
    except SnapshotError as e:
        print(f"Error: {e}")
    return None


def _service(snapshot: HerdSnapshot, args) -> HerdMetricsService:
    return HerdMetricsService(
        snapshot.animals,
        snapshot.breeding_seasons,
        reference_start=args.reference_start,
    )


# =============================================================================
# Commands
# =============================================================================


def show_kpis(service: HerdMetricsService, as_json: bool) -> None:
    result = service.calculate_kpis()
    if as_json:
        _print_json(result)
        return

    kpis = result["kpis"]
    details = result["details"]

    print("=" * 60)
    print("Herd KPIs")
    print("=" * 60)
    print(f"Reference period from: {service.reference_start}")
    print(
        f"Animals: {details['total_animals']} "
        f"({details['animals_in_reference_period']} in period, "
        f"{details['animals_excluded_from_period']} excluded)"
    )
    print()
    print(f"  Pregnancy rate:        {kpis['pregnancy_rate']:.1f}%  ({details['pregnancy_source']})")
    print(f"  Birth rate:            {kpis['birth_rate']:.1f}%")
    print(f"  Mortality rate:        {kpis['mortality_rate']:.1f}%")
    print(f"  Calving interval:      {kpis['calving_interval']} days")
    print(f"  First calving age:     {kpis['avg_first_calving_age_months']} months")
    print(f"  Avg birth weight:      {format_weight(kpis['avg_birth_weight'])}")
    print(f"  Avg weaning weight:    {format_weight(kpis['avg_weaning_weight'])}")
    print(f"  Avg yearling weight:   {format_weight(kpis['avg_yearling_weight'])}")
    print(f"  Kg calf/cow/year:      {format_weight(kpis['kg_calf_per_cow_year'])}")
    print(f"  Avg daily gain:        {kpis['avg_gmd']:.2f} kg/day")
    print()
    print(f"  Exposed: {details['exposed_cows']}  Pregnant: {details['pregnant_cows']}  Births: {details['births']}")
    print(f"  Active: {details['total_active']}  Deaths: {details['total_deaths']}  Sold: {details['total_sold']}")

    if result["warnings"]:
        print("\nWarnings:")
        for warning in result["warnings"]:
            print(f"  - {warning}")


def show_deps(service: HerdMetricsService, args) -> None:
    reports = service.all_deps()
    if args.elite:
        reports = get_elite_animals(reports)
    elif args.cull:
        reports = get_cull_animals(reports)
    reports = rank_by_dep(reports, args.trait)
    if args.limit:
        reports = reports[: args.limit]

    if args.json:
        _print_json([asdict(r) for r in reports])
        return

    print(f"{'Tag':<12} {'Breed':<12} {'Sex':<6} {'BW':>6} {'WW':>6} {'YW':>6} {'MILK':>6} {'Acc':>5} {'Pct':>4}  Rec")
    print("-" * 84)
    for r in reports:
        print(
            f"{r.tag:<12} {r.breed.value:<12} {r.sex.value:<6} "
            f"{r.dep.birth_weight:>6.1f} {r.dep.weaning_weight:>6.1f} {r.dep.yearling_weight:>6.1f} "
            f"{r.dep.milk_production:>6.1f} {r.accuracy.get(args.trait):>5.2f} "
            f"{r.percentile.get(args.trait):>4}  {r.recommendation.value}"
        )
    print(f"\n{len(reports)} animals")


def show_animal(service: HerdMetricsService, tag: str, as_json: bool) -> None:
    animal = service.indices.get_by_tag(tag)
    if animal is None:
        print(f"No animal with tag {tag!r}")
        return

    derived = service.get_derived(animal.id)
    if as_json:
        _print_json(derived)
        return

    by_id = service.indices.get_by_id

    def tags(ids: list[str]) -> str:
        labels = []
        for animal_id in ids:
            relative = by_id(animal_id)
            labels.append(relative.tag if relative is not None and relative.tag else animal_id or "?")
        return ", ".join(labels) or "-"

    gmd = derived.gmd
    print(f"Tag: {animal.label}")
    print(f"Breed: {animal.breed.value}  Sex: {animal.sex.value}  Status: {animal.status.value}")
    print(f"Birth date: {animal.birth_date or '-'}  Age: {derived.age_months} months")
    print(f"Current weight: {format_weight(animal.weight_kg)}")
    print(f"Sire: {by_id(derived.sire_id).label if derived.sire_id else animal.sire.name or '-'}")
    print(f"Dam: {by_id(derived.dam_id).label if derived.dam_id else animal.dam.name or '-'}")

    print("\nGrowth:")
    if gmd.has_data:
        print(f"  Total GMD:          {format_gain(gmd.gmd_total)} ({classify_gmd(gmd.gmd_total).value})")
        print(f"  Birth -> weaning:   {format_gain(gmd.gmd_birth_to_weaning)}")
        print(f"  Weaning -> yearling: {format_gain(gmd.gmd_weaning_to_yearling)}")
        print(f"  Last 30 days:       {format_gain(gmd.gmd_last_30_days)}")
        print(f"  Last period:        {format_gain(gmd.gmd_last_period)}")
        print(f"  Tracked days:       {gmd.tracked_days}")
        estimate = estimate_weight_today(gmd, service.today)
        if estimate is not None:
            print(f"  Estimated today:    {format_weight(estimate)}")
        if derived.gmd_rank_overall:
            print(f"  Rank: #{derived.gmd_rank_overall} herd, #{derived.gmd_rank_breed} breed")
    else:
        print("  No gain data")

    slaughter = predict_slaughter_date(animal, today=service.today)
    if slaughter is not None and slaughter.days_needed > 0:
        print(f"  Slaughter weight by: {slaughter.date} ({slaughter.confidence}% confidence)")

    dep = derived.dep
    print("\nDEP (value / accuracy / percentile):")
    for trait in TRAITS:
        print(
            f"  {trait:<16} {dep.dep.get(trait):>6.1f}  {dep.accuracy.get(trait):.2f}  {dep.percentile.get(trait):>3}"
        )
    print(f"  Recommendation: {dep.recommendation.value}")

    print(f"\nProgeny ({len(derived.progeny_ids)}): {tags(derived.progeny_ids)}")
    summaries = get_progeny_summaries(animal, service.indices)
    outside = [s.tag for s in summaries if not s.in_herd]
    if outside:
        print(f"  Recorded outside the herd: {', '.join(outside)}")
    stats = calculate_progeny_stats(summaries)
    if stats["count_with_birth"] or stats["count_with_weaning"] or stats["count_with_yearling"]:
        print(
            f"  Mean weights: birth {format_weight(stats['avg_birth_weight'] or None)}, "
            f"weaning {format_weight(stats['avg_weaning_weight'] or None)}, "
            f"yearling {format_weight(stats['avg_yearling_weight'] or None)}"
        )
    print(f"Siblings ({len(derived.sibling_ids)}): {tags(derived.sibling_ids)}")

    if derived.reproductive is not None:
        repro = derived.reproductive
        print("\nReproduction:")
        print(f"  Pregnant: {'yes' if repro.is_pregnant else 'no'} ({repro.source.value})")
        if repro.expected_calving_date:
            print(f"  Expected calving: {repro.expected_calving_date}")
        if derived.calving_intervals:
            print(f"  Calving intervals: {', '.join(str(i) for i in derived.calving_intervals)} days")
        if derived.first_calving_age_months is not None:
            print(f"  First calving age: {derived.first_calving_age_months} months")


def show_lineage(service: HerdMetricsService, tag: str, generations: int, as_json: bool) -> None:
    animal = service.indices.get_by_tag(tag)
    if animal is None:
        print(f"No animal with tag {tag!r}")
        return

    tree = get_lineage(animal, service.indices, generations=generations)
    if as_json:
        _print_json(tree)
    else:
        print(format_lineage_tree(tree))


def show_sires(service: HerdMetricsService, as_json: bool) -> None:
    comparisons = service.compare_sires()
    if as_json:
        _print_json(comparisons)
        return

    if not comparisons:
        print("No sire with at least two offspring")
        return

    print(f"{'Sire':<20} {'Calves':>6} {'GMD':>7} {'WW':>8} {'YW':>8}  Best")
    print("-" * 70)
    for c in comparisons:
        best = f"{c['best_offspring_tag']} ({c['best_offspring_gmd']:.3f})" if c["best_offspring_tag"] else "-"
        print(
            f"{c['sire_label']:<20} {c['offspring_count']:>6} {c['avg_gmd']:>7.3f} "
            f"{c['avg_weaning_weight']:>8.1f} {c['avg_yearling_weight']:>8.1f}  {best}"
        )


def show_seasons(snapshot: HerdSnapshot, as_json: bool) -> None:
    results = [
        {
            "id": s.id,
            "name": s.name,
            "status": s.status,
            **calculate_breeding_metrics(s),
            "expected_calvings": expected_calvings(s),
        }
        for s in snapshot.breeding_seasons
    ]
    if as_json:
        _print_json(results)
        return

    if not results:
        print("No breeding seasons in snapshot")
        return

    for m in results:
        print(f"{m['name'] or m['id']} [{m['status'].value}]")
        print(f"  Exposed: {m['total_exposed']}  Covered: {m['total_covered']}  Pregnant: {m['total_pregnant']}")
        print(f"  Empty: {m['total_empty']}  Pending: {m['total_pending']}")
        print(f"  First-service pregnancy rate: {m['pregnancy_rate']:.1f}%")
        print(f"  Overall pregnancy rate:       {m['overall_pregnancy_rate']:.1f}%")
        print(f"  Service rate: {m['service_rate']:.1f}%  Conception rate: {m['conception_rate']:.1f}%")
        print(f"  Repasse: {m['repasse_count']} ({m['repasse_pregnant']} pregnant)")
        for bull in m["coverages_by_bull"]:
            print(f"    {bull['bull_tag']:<15} {bull['count']:>4} services {bull['pregnancies']:>4} pregnancies")
        if m["pregnancy_checks_due"]:
            print(f"  Pregnancy checks due: {len(m['pregnancy_checks_due'])}")
        for calving in m["expected_calvings"]:
            cow = calving["cow_tag"] or calving["cow_id"]
            marker = " (repasse)" if calving["is_repasse"] else ""
            print(f"  Calving due {calving['expected_date']}: {cow} x {calving['sire_label']}{marker}")
        print()


async def fetch(url: str | None, output: str | None, refresh: bool) -> None:
    output_path = Path(output) if output else default_snapshot_path()

    if not refresh and output_path.exists():
        mtime = datetime.fromtimestamp(output_path.stat().st_mtime)
        age = datetime.now() - mtime
        if age < timedelta(hours=CACHE_FRESHNESS_HOURS):
            hours_old = int(age.total_seconds() / 3600)
            print(f"Snapshot is fresh ({hours_old} hours old, threshold: {CACHE_FRESHNESS_HOURS}h)")
            print("Use --refresh to force re-download")
            print(f"File: {output_path}")
            return

    try:
        snapshot = await cache_snapshot(url, output_path)
    except (ValueError, SnapshotError, SnapshotFetchError) as e:
        print(f"Error: {e}")
        raise SystemExit(1) from e
    print(f"Saved {len(snapshot.animals)} animals and {len(snapshot.breeding_seasons)} seasons to {output_path}")


# =============================================================================
# CLI
# =============================================================================


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Herd genetic and zootechnical analytics")
    parser.add_argument("--snapshot", help="Snapshot JSON file (defaults to the cached snapshot)")
    parser.add_argument(
        "--reference-start",
        type=date.fromisoformat,
        help=f"Reference period start, YYYY-MM-DD (default: {settings.reference_period_start})",
    )
    subparsers = parser.add_subparsers(dest="command", help="Command")

    kpis_parser = subparsers.add_parser("kpis", help="Show herd KPIs")
    kpis_parser.add_argument("--json", action="store_true", help="Output as JSON")

    deps_parser = subparsers.add_parser("deps", help="Rank animals by breeding value")
    deps_parser.add_argument("--trait", choices=TRAITS, default="weaning_weight", help="Trait to rank by")
    group = deps_parser.add_mutually_exclusive_group()
    group.add_argument("--elite", action="store_true", help="Only elite sires and dams")
    group.add_argument("--cull", action="store_true", help="Only cull candidates")
    deps_parser.add_argument("--limit", type=int, help="Show at most N animals")
    deps_parser.add_argument("--json", action="store_true", help="Output as JSON")

    animal_parser = subparsers.add_parser("animal", help="Show derived metrics for one animal")
    animal_parser.add_argument("tag", help="Animal tag")
    animal_parser.add_argument("--json", action="store_true", help="Output as JSON")

    lineage_parser = subparsers.add_parser("lineage", help="Show animal lineage")
    lineage_parser.add_argument("tag", help="Animal tag")
    lineage_parser.add_argument("--generations", type=int, default=3, help="Generations to show")
    lineage_parser.add_argument("--json", action="store_true", help="Output as JSON")

    sires_parser = subparsers.add_parser("sires", help="Compare offspring performance per sire")
    sires_parser.add_argument("--json", action="store_true", help="Output as JSON")

    seasons_parser = subparsers.add_parser("seasons", help="Show breeding season metrics")
    seasons_parser.add_argument("--json", action="store_true", help="Output as JSON")

    fetch_parser = subparsers.add_parser("fetch", help="Download a snapshot into the local cache")
    fetch_parser.add_argument("--url", help="Export URL (default: HERDMETRICS_SNAPSHOT_URL)")
    fetch_parser.add_argument("--output", "-o", type=str, help="Output file path")
    fetch_parser.add_argument("--refresh", action="store_true", help="Force re-download, ignoring cache age")

    return parser


async def cli_main(argv: list[str] | None = None) -> None:
    """CLI entry point for herd reports."""
    parser = build_parser()
    args = parser.parse_args(argv)

    logging.basicConfig(level=settings.log_level.upper(), format="%(levelname)s %(name)s: %(message)s")

    if args.command == "fetch":
        await fetch(args.url, args.output, args.refresh)
        return

    if args.command is None:
        parser.print_help()
        return

    snapshot = _load(args.snapshot)
    if snapshot is None:
        raise SystemExit(1)

    if args.command == "seasons":
        show_seasons(snapshot, args.json)
        return

    service = _service(snapshot, args)

    if args.command == "kpis":
        show_kpis(service, args.json)
    elif args.command == "deps":
        show_deps(service, args)
    elif args.command == "animal":
        show_animal(service, args.tag, args.json)
    elif args.command == "lineage":
        show_lineage(service, args.tag, args.generations, args.json)
    elif args.command == "sires":
        show_sires(service, args.json)


def cli() -> None:
    """Sync CLI entry point."""
    asyncio.run(cli_main())


if __name__ == "__main__":
    cli()
