"""
Build statistics for a folder of series JSON files.

This script:
1) Loads every *.json file of a folder (in parallel)
2) Prints the loaded series (pretty or simple layout)
3) Counts them by the chosen attribute
4) Saves the table to statistics_by_<attribute>.xml

Usage:
    python -m scripts.build_statistics data genre --mode simple
"""

import argparse  # command-line options
import time  # measure step timings
from pathlib import Path  # filesystem-safe paths
from typing import List, Optional

from loguru import logger  # console logging

from series_analyzer.config import data_dir, settings  # configured defaults
from series_analyzer.data_loader import SeriesLoader  # parallel folder loader
from series_analyzer.exceptions import BadInputError, LoadError  # invalid attribute / malformed files
from series_analyzer.models import Series
from series_analyzer.statistics import SUPPORTED_ATTRIBUTES, count_by_attribute, write_statistics_xml


def format_series(s: Series, pretty: bool = True) -> str:
	"""One series as a single line; the layout is picked by the caller."""
	studio = s.studio.name if s.studio else '-'
	if pretty:
		status = 'finished' if s.finished else 'ongoing'
		return f"{s.title:<30} | {s.genre:<25} | {s.seasons:>2} seasons | {s.rating:>4.1f} | {s.year} | {status:<8} | {studio}"
	return f"{s.title};{s.genre};{s.seasons};{s.rating};{s.year};{str(s.finished).lower()};{studio}"


def print_series(series: List[Series], pretty: bool = True) -> None:
	for s in series:
		print(format_series(s, pretty=pretty))


def main(argv: Optional[List[str]] = None) -> int:
	p = argparse.ArgumentParser(description="Count series by attribute and save the result as XML.")
	p.add_argument("folder", nargs="?", type=Path, default=None, help="folder with *.json files (default: configured data_dir)")
	p.add_argument("attribute", nargs="?", default="genre", help=f"one of: {', '.join(SUPPORTED_ATTRIBUTES)}")
	p.add_argument("--mode", choices=["pretty", "simple"], default="pretty", help="listing layout")
	p.add_argument("--workers", type=int, default=int(settings.get("loader_workers", 4)), help="parser threads")
	p.add_argument("--output-dir", type=Path, default=Path("."), help="where to write the XML file")
	args = p.parse_args(argv)

	folder = args.folder or data_dir()
	pretty = args.mode == "pretty"

	# Headline banner for visibility in console
	logger.info("=" * 60)
	logger.info("Build Series Statistics")
	logger.info("=" * 60)

	try:
		# 1) Load data
		logger.info(f"[1/3] Loading series from {folder}...")
		t0 = time.time()  # start timer
		series = SeriesLoader(workers=args.workers).load_from_folder(folder)
		logger.info(f"[OK] Loaded {len(series)} series in {time.time() - t0:.2f}s | mode: {args.mode.upper()}")
		print_series(series, pretty=pretty)

		# 2) Count
		logger.info(f"[2/3] Counting by '{args.attribute}'...")
		table = count_by_attribute(series, args.attribute)
		for key, count in table:
			logger.info(f"  {key}: {count}")

		# 3) Save
		attribute = args.attribute.strip().lower()
		args.output_dir.mkdir(parents=True, exist_ok=True)  # ensure exists
		out = write_statistics_xml(table, attribute, args.output_dir / f"statistics_by_{attribute}.xml")
		logger.info(f"[3/3] Saved: {out.resolve()}")
	except (BadInputError, LoadError) as e:
		logger.error(str(e))  # message only, no stack trace
		return 1

	logger.info("=" * 60)
	return 0


if __name__ == '__main__':
	raise SystemExit(main())  # invoke builder
