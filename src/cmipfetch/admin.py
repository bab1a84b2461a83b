"""Command line interface for cmipfetch.

Usage:
    python -m cmipfetch.admin domains
    python -m cmipfetch.admin download FGOALS_f3_H_daily [--start-year 1950] [--end-year 2014]
    python -m cmipfetch.admin elevation MRI_AGCM3_2_S_daily
"""

import argparse
import logging
import sys

from cmipfetch.config import settings
from cmipfetch.errors import ConfigError, ElevationError

logger = logging.getLogger("cmipfetch.admin")


def list_domains(args):
    """List known domains with their grids."""
    from cmipfetch.models.catalog import Cmip6Domain

    print(f"{'Domain':<24} {'Source':<16} {'Grid':<12} {'Elevation':<10}")
    print("-" * 64)
    for domain in Cmip6Domain:
        grid = domain.grid
        has_elevation = "yes" if domain.version_orography else "no"
        print(f"{domain.value:<24} {domain.source_name:<16} {grid.nx}x{grid.ny:<7} {has_elevation:<10}")


def download(args):
    """Download and archive a domain."""
    from cmipfetch.models.catalog import Cmip6Domain
    from cmipfetch.pipelines.runner import run_download

    domain = Cmip6Domain.from_name(args.domain)
    summary = run_download(
        domain,
        start_year=args.start_year,
        end_year=args.end_year,
        max_workers=args.workers,
    )
    print(
        f"{domain.value}: {summary.persisted} persisted, "
        f"{summary.skipped} skipped, {summary.failed} failed"
    )
    return 0 if summary.ok else 1


def elevation(args):
    """Build the elevation grid for a domain."""
    from cmipfetch.models.catalog import Cmip6Domain
    from cmipfetch.pipelines.runner import prepare_directories
    from cmipfetch.services.elevation import ElevationCache

    domain = Cmip6Domain.from_name(args.domain)
    prepare_directories(domain)
    grid = ElevationCache().get(domain)
    if grid is None:
        print(f"{domain.value} publishes no orography")
        return 1
    print(f"Elevation ready: {domain.surface_elevation_file} ({grid.size} cells)")
    return 0


def main(argv=None):
    parser = argparse.ArgumentParser(description="Download HighResMIP data and convert")
    sub = parser.add_subparsers(dest="command")

    # domains
    sub.add_parser("domains", help="List known domains")

    # download
    p_dl = sub.add_parser("download", help="Download CMIP6 data and convert")
    p_dl.add_argument("domain", help="Domain name, e.g. FGOALS_f3_H_daily")
    p_dl.add_argument("--start-year", type=int, default=None, help="First year (default: from config)")
    p_dl.add_argument("--end-year", type=int, default=None, help="Last year (default: from config)")
    p_dl.add_argument("--workers", type=int, default=None, help="Parallel jobs (default: from config)")

    # elevation
    p_elev = sub.add_parser("elevation", help="Build the surface elevation grid only")
    p_elev.add_argument("domain", help="Domain name")

    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if settings.debug else logging.INFO,
        format="%(asctime)s [%(name)s] %(levelname)s: %(message)s",
    )

    try:
        if args.command == "domains":
            list_domains(args)
            code = 0
        elif args.command == "download":
            code = download(args)
        elif args.command == "elevation":
            code = elevation(args)
        else:
            parser.print_help()
            code = 1
    except (ConfigError, ValueError) as e:
        logger.error("%s", e)
        code = 2
    except ElevationError as e:
        logger.error("%s", e)
        code = 1
    sys.exit(code)


if __name__ == "__main__":
    main()
