#!/usr/bin/env python3
"""Render the facility map to a static HTML file.

Loads the facility table and the isochrone collection exactly like the
interactive view, optionally "clicks" one facility so its isochrone and
popup are drawn, then writes a folium snapshot.

Usage
-----
::

    python scripts/render_map.py \
        --facilities data/caps_final.csv \
        --isochrones data/isochrones.geojson \
        --select "Hospital del Mar" \
        --output map.html

Unset options fall back to ``CAREMAP_*`` environment variables and then to
the library defaults (UTF-16, tab-separated).
"""

from __future__ import annotations

import argparse
import asyncio
import json
import logging
import sys
from pathlib import Path
from typing import Any

# Allow running from the repo root without installing the package.
_repo = Path(__file__).resolve().parent.parent
_src = _repo / "src"
if _src.is_dir():
    sys.path.insert(0, str(_src))

from caremap import CareMapConfig, CorrelationKey, FacilityMapView, KeyNormalization  # noqa: E402
from caremap.export import export_html  # noqa: E402

_DELIMITERS = {"tab": "\t", "comma": ",", "auto": None}


def _data_overrides(args: argparse.Namespace) -> dict[str, Any]:
    overrides: dict[str, Any] = {}
    if args.facilities:
        overrides["facilities"] = args.facilities
    if args.isochrones:
        overrides["isochrones"] = args.isochrones
    if args.encoding:
        overrides["facilities_encoding"] = args.encoding
        overrides["isochrones_encoding"] = args.encoding
    if args.delimiter:
        overrides["delimiter"] = _DELIMITERS[args.delimiter]
    if args.correlation_key:
        overrides["correlation_key"] = CorrelationKey(args.correlation_key)
    if args.key_normalization:
        overrides["key_normalization"] = KeyNormalization(args.key_normalization)
    return overrides


async def main() -> int:
    parser = argparse.ArgumentParser(description="Render the facility capacity map to HTML.")
    parser.add_argument("--facilities", help="Facility table (path or URL)")
    parser.add_argument("--isochrones", help="Isochrone FeatureCollection (path or URL)")
    parser.add_argument("--encoding", help="Text encoding of both files (default: utf-16)")
    parser.add_argument("--delimiter", choices=sorted(_DELIMITERS), help="Facility table delimiter")
    parser.add_argument(
        "--correlation-key",
        choices=[key.value for key in CorrelationKey],
        help="Facility attribute matched against isochrone names",
    )
    parser.add_argument(
        "--key-normalization",
        choices=[mode.value for mode in KeyNormalization],
        help="How correlation keys are folded before matching",
    )
    parser.add_argument("--select", metavar="NAME", help="Click this facility before rendering")
    parser.add_argument("--style-json", help="Also write the Mapbox GL style document to FILE")
    parser.add_argument("--output", "-o", default="facility_map.html", help="HTML output file")
    parser.add_argument("--verbose", "-v", action="store_true", help="Enable debug logging")
    args = parser.parse_args()

    if args.verbose:
        logging.basicConfig(level=logging.DEBUG, format="%(levelname)s %(name)s: %(message)s")
    else:
        logging.basicConfig(level=logging.INFO, format="%(levelname)s %(message)s")

    config = CareMapConfig.from_env(data=_data_overrides(args))

    async with FacilityMapView(config) as view:
        await view.wait_loaded()
        print(f"{len(view.facilities)} facilities, {len(view.controller.index or {})} isochrones", file=sys.stderr)

        if args.select:
            facility = view.find(args.select)
            if facility is None:
                print(f"No facility named {args.select!r}", file=sys.stderr)
                return 1
            popup = view.click(facility)
            print(json.dumps(popup.model_dump(mode="json"), indent=2, ensure_ascii=False))

        export_html(view.renderer, args.output, selected=view.selected)
        if args.style_json:
            style = view.context.engine.to_style()  # type: ignore[attr-defined]
            Path(args.style_json).write_text(json.dumps(style, indent=2, ensure_ascii=False), encoding="utf-8")

    print(f"Map written to {args.output}", file=sys.stderr)
    return 0


if __name__ == "__main__":
    sys.exit(asyncio.run(main()))
