"""
CLI main entry point.
"""

import argparse
import json
import logging
import sys
from pathlib import Path

from ..config import Config, create_default_config, load_config
from ..ingestion import IngestionError, Orchestrator, SourceFile, probe
from ..matching import Church, church_ledger, load_contributor_file
from ..state_store import StateStore

logger = logging.getLogger(__name__)


def setup_logging(verbose: bool = False) -> None:
    """Configure logging."""
    level = logging.DEBUG if verbose else logging.INFO
    logging.basicConfig(
        level=level,
        format="%(asctime)s | %(levelname)-8s | %(name)s | %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )


def create_cli() -> argparse.ArgumentParser:
    """Create CLI argument parser."""
    parser = argparse.ArgumentParser(
        prog="church-recon",
        description="Ingest bank statements and reconcile them against church contributor lists",
    )

    parser.add_argument(
        "-c",
        "--config",
        type=Path,
        default=Path("config.yaml"),
        help="Path to config file (default: config.yaml)",
    )
    parser.add_argument(
        "-v",
        "--verbose",
        action="store_true",
        help="Enable verbose logging",
    )

    subparsers = parser.add_subparsers(dest="command", help="Command to run")

    # init-config command
    init_parser = subparsers.add_parser("init-config", help="Write a default config file")
    init_parser.add_argument(
        "--force",
        action="store_true",
        help="Overwrite an existing config file",
    )

    # probe command
    probe_parser = subparsers.add_parser("probe", help="Detect the type of statement files")
    probe_parser.add_argument("files", nargs="+", type=Path, help="Files to probe")

    # ingest command
    ingest_parser = subparsers.add_parser(
        "ingest", help="Parse statements into normalized transactions"
    )
    ingest_parser.add_argument("files", nargs="+", type=Path, help="Statement files")
    ingest_parser.add_argument(
        "--json",
        action="store_true",
        help="Print per-file reports as JSON",
    )

    # reconcile command
    reconcile_parser = subparsers.add_parser(
        "reconcile", help="Match statements against church contributor lists"
    )
    reconcile_parser.add_argument(
        "--statement",
        nargs="+",
        type=Path,
        required=True,
        help="Bank statement files (XLSX, CSV, OFX, PDF, TXT)",
    )
    reconcile_parser.add_argument(
        "--contributors",
        nargs="+",
        required=True,
        metavar="CHURCH_ID=FILE",
        help="Contributor list per church; the church id defaults to the file name",
    )
    reconcile_parser.add_argument(
        "--threshold",
        type=float,
        help="Override the similarity threshold (0-100)",
    )
    reconcile_parser.add_argument(
        "--tolerance",
        type=int,
        help="Override the day tolerance",
    )
    reconcile_parser.add_argument(
        "--json",
        action="store_true",
        help="Print the full result as JSON",
    )

    # learned command
    learned_parser = subparsers.add_parser("learned", help="Inspect learned associations")
    learned_subparsers = learned_parser.add_subparsers(dest="learned_command")
    learned_subparsers.add_parser("list", help="List learned associations")
    delete_parser = learned_subparsers.add_parser("delete", help="Forget a learned association")
    delete_parser.add_argument("key", help="Normalized description of the association")

    # status command
    subparsers.add_parser("status", help="Show store statistics")

    return parser


def parse_contributor_arg(value: str) -> tuple[str, Path]:
    """Split "CHURCH_ID=FILE"; a bare FILE uses its stem as the church id."""
    church_id, sep, path = value.partition("=")
    if not sep:
        file_path = Path(value)
        return file_path.stem, file_path
    return church_id.strip(), Path(path.strip())


def _read_files(paths: list[Path]) -> list[SourceFile] | None:
    missing = [path for path in paths if not path.is_file()]
    if missing:
        for path in missing:
            print(f"❌ File not found: {path}")
        return None
    return [SourceFile.from_path(path) for path in paths]


def cmd_init_config(config_path: Path, force: bool = False) -> int:
    """Write a default configuration file."""
    if config_path.exists() and not force:
        print(f"⚠️  Config already exists: {config_path} (use --force to overwrite)")
        return 1
    create_default_config(config_path)
    print(f"✓ Wrote default config to {config_path}")
    return 0


def cmd_probe(files: list[Path]) -> int:
    """Print the detected type of each file."""
    sources = _read_files(files)
    if sources is None:
        return 1

    print("\n🔍 File types")
    print("=" * 40)
    for source in sources:
        result = probe(source)
        print(f"  {source.name}: {result.file_type.value} ({result.confidence.value} confidence)")
    return 0


def cmd_ingest(config: Config, files: list[Path], as_json: bool = False) -> int:
    """Ingest statement files and print normalized transactions."""
    sources = _read_files(files)
    if sources is None:
        return 1

    reports = Orchestrator(config).process_batch(sources)
    failed = sum(1 for report in reports if not report.success)

    if as_json:
        print(json.dumps([report.to_dict() for report in reports], indent=2, ensure_ascii=False))
        return 1 if failed == len(reports) else 0

    for report in reports:
        print(f"\n📄 {report.source_name}")
        if not report.success:
            print(f"  ❌ {report.error}")
            continue
        for tx in report.transactions:
            print(f"  {tx.date}  {tx.amount:>12.2f}  {tx.name}")
        print(
            f"  → {len(report.transactions)} transactions, "
            f"{report.rows_excluded} rows excluded, {report.control_rows} control rows"
        )

    print()
    print(f"Files: {len(reports)} processed, {failed} failed")
    return 1 if failed == len(reports) else 0


def cmd_reconcile(
    config: Config,
    statements: list[Path],
    contributors: list[str],
    threshold: float | None = None,
    tolerance: int | None = None,
    as_json: bool = False,
) -> int:
    """Run a reconciliation and print results, counts and church ledgers.

    Returns:
        Exit code (0 for success, 1 for failure).
    """
    from ..services.reconciliation import ReconciliationService

    if threshold is not None:
        config.reconciliation.similarity_threshold = threshold
    if tolerance is not None:
        config.reconciliation.day_tolerance = tolerance
    errors = config.validate()
    if errors:
        for error in errors:
            print(f"❌ {error}")
        return 1

    sources = _read_files(statements)
    if sources is None:
        return 1

    contributor_files = []
    for value in contributors:
        church_id, path = parse_contributor_arg(value)
        loaded = _read_files([path])
        if loaded is None:
            return 1
        try:
            contributor_files.append(
                load_contributor_file(loaded[0], Church(id=church_id, name=church_id), config)
            )
        except IngestionError as e:
            print(f"❌ Could not read contributor list {path}: {e}")
            return 1

    suggester = None
    if config.llm.enabled:
        from ..ai import OllamaNameSuggester

        suggester = OllamaNameSuggester(config.llm)

    store = StateStore(config.state_db_path)
    try:
        with ReconciliationService(config, store=store, suggester=suggester) as service:
            result = service.run(sources, contributor_files)
    finally:
        if suggester is not None:
            suggester.close()

    if as_json:
        payload = result.to_dict()
        payload["ledger"] = [ledger.to_dict() for ledger in church_ledger(result.results)]
        print(json.dumps(payload, indent=2, ensure_ascii=False))
        return 0 if result.success else 1

    print("\n🔄 Reconciliation")
    print("=" * 72)
    for match in result.results:
        tx = match.transaction
        who = match.contributor.name if match.contributor else "-"
        line = f"  {match.status.value:<17} {tx.date:<10} {tx.amount:>10.2f}  {tx.description[:24]:<24} → {match.church.name} / {who}"
        if match.divergence:
            line += f"  ⚠️  expected {match.divergence.expected_church.name}"
        elif match.suggestion:
            line += f"  💡 {match.suggestion.name}?"
        print(line)

    counts = result.counts
    print()
    print("📊 Reconciliation Results")
    print("=" * 40)
    print(f"  Status:          {result.state.value}")
    print(f"  Files failed:    {result.files_failed}")
    print(f"  Rows excluded:   {result.rows_excluded}")
    print(f"  Expenses:        {result.expenses}")
    if counts is not None:
        print(f"  Identified:      {counts.identified}")
        print(f"  Unidentified:    {counts.unidentified}")
        print(f"  Pending:         {counts.pending}")
        print(f"  Divergent:       {counts.divergent}")
    print(f"  Duration:        {result.duration_ms}ms")

    ledgers = church_ledger(result.results)
    if ledgers:
        print()
        print("⛪ Churches")
        print("=" * 40)
        for ledger in ledgers:
            print(
                f"  {ledger.church.name:<20} income {ledger.income:>10.2f}  "
                f"expected {ledger.expected:>10.2f}  pending {ledger.pending}"
            )
    print()

    if result.errors:
        print("⚠️  Errors encountered:")
        for error in result.errors:
            print(f"   - {error}")

    if result.success:
        print("✓ Reconciliation completed successfully")
        return 0
    print("❌ Reconciliation failed")
    return 1


def cmd_learned(config: Config, action: str | None, key: str | None = None) -> int:
    """List or delete learned associations."""
    store = StateStore(config.state_db_path)

    if action == "delete":
        if store.delete_learned_association(key):
            print(f"✓ Forgot association {key!r}")
            return 0
        print(f"❌ No association for {key!r}")
        return 1

    associations = store.get_learned_associations()
    print(f"\n🧠 Learned associations ({len(associations)})")
    print("=" * 40)
    for association in associations:
        print(
            f"  {association.normalized_description} → "
            f"{association.church_id} / {association.contributor_name}"
        )
    return 0


def cmd_status(config: Config) -> int:
    """Show store statistics."""
    store = StateStore(config.state_db_path)
    stats = store.get_stats()

    print("\n📊 Status")
    print("=" * 40)
    print(f"  Learned associations:   {stats['learned_associations']}")
    print(f"  Churches learned:       {stats['churches_learned']}")
    print(f"  Reconciliation runs:    {stats['runs_total']}")
    print(f"  Failed runs:            {stats['runs_failed']}")

    runs = store.get_runs(limit=5)
    if runs:
        print()
        print("🕒 Recent runs")
        print("=" * 40)
        for run in runs:
            identified = run["counts"]["identified"] if run["counts"] else "-"
            print(
                f"  #{run['id']} {run['started_at']}  {run['state']:<10} "
                f"identified {identified}, files failed {run['files_failed']}"
            )
    print()

    return 0


def main(args: list[str] | None = None) -> int:
    """Main entry point."""
    parser = create_cli()
    parsed = parser.parse_args(args)

    setup_logging(parsed.verbose)

    if not parsed.command:
        parser.print_help()
        return 1

    if parsed.command == "init-config":
        return cmd_init_config(parsed.config, parsed.force)
    if parsed.command == "probe":
        return cmd_probe(parsed.files)

    # Load config
    try:
        config = load_config(parsed.config)
    except Exception as e:
        print(f"❌ Failed to load config: {e}")
        return 1

    # Route to command
    if parsed.command == "ingest":
        return cmd_ingest(config, parsed.files, parsed.json)
    elif parsed.command == "reconcile":
        return cmd_reconcile(
            config,
            statements=parsed.statement,
            contributors=parsed.contributors,
            threshold=parsed.threshold,
            tolerance=parsed.tolerance,
            as_json=parsed.json,
        )
    elif parsed.command == "learned":
        return cmd_learned(config, parsed.learned_command, getattr(parsed, "key", None))
    elif parsed.command == "status":
        return cmd_status(config)
    else:
        parser.print_help()
        return 1


if __name__ == "__main__":
    sys.exit(main())
