import argparse
import logging
import sys
from typing import List, Optional

from ecoscan.schemas.analysis import AnalyzeResponse
from ecoscan_client.api import DEFAULT_BACKEND_URL, ApiError, ProductNotIdentifiedError, SustainabilityClient
from ecoscan_client.camera import CameraError, capture_photo
from ecoscan_client.ingestion import ImageValidationError


def format_report(result: AnalyzeResponse) -> str:
    a = result.analysis
    lines = [
        f"{a.product_name}",
        f"  Sustainability score: {a.sustainability_score}/100",
        f"  Confidence: {a.confidence}% (image quality: {a.image_quality})",
        f"  Eco labels: {', '.join(a.eco_labels) if a.eco_labels else 'none visible'}",
        f"  Recyclability: {a.recyclability}",
        f"  Carbon footprint: {a.carbon_footprint}",
        f"  Water footprint: {a.water_footprint}",
        f"  Materials: {a.material_composition}",
        f"  Lifespan: {a.lifespan}",
        f"  Energy: {a.energy_production}",
        "",
        "Greener alternatives:",
    ]
    for alt in a.alternatives:
        score = f" ({alt.score}/100)" if alt.score is not None else ""
        lines.append(f"  - {alt.name}{score}: {alt.description}")
        if alt.price:
            lines.append(f"      Price: {alt.price}")
        for link in alt.platform_links:
            lines.append(f"      {link.display_name}: {link.url}")
    if a.warnings:
        lines.append("")
        lines.append("Warnings:")
        lines.extend(f"  ! {w}" for w in a.warnings)
    return "\n".join(lines)


def format_not_identified(e: ProductNotIdentifiedError) -> str:
    lines = [e.message, "", "Suggestions:"]
    lines.extend(f"  - {s}" for s in e.suggestions)
    return "\n".join(lines)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="ecoscan", description="Sustainability analysis for a product photo")
    parser.add_argument("--server", default=DEFAULT_BACKEND_URL, help="EcoScan backend URL")
    parser.add_argument("-v", "--verbose", action="store_true", help="Log requests")
    sub = parser.add_subparsers(dest="command", required=True)

    analyze = sub.add_parser("analyze", help="Analyze an image file or a camera capture")
    source = analyze.add_mutually_exclusive_group(required=True)
    source.add_argument("path", nargs="?", help="Image file (JPEG, PNG, GIF, WebP)")
    source.add_argument("--camera", action="store_true", help="Take a photo with the camera")
    analyze.add_argument("--device", type=int, default=0, help="Camera device index")
    return parser


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    logging.basicConfig(level=logging.INFO if args.verbose else logging.WARNING)

    try:
        with SustainabilityClient(args.server) as client:
            if args.camera:
                result = client.analyze_data_url(capture_photo(args.device))
            else:
                result = client.analyze_file(args.path)
    except ProductNotIdentifiedError as e:
        print(format_not_identified(e), file=sys.stderr)
        return 1
    except (ImageValidationError, CameraError, ApiError) as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    print(format_report(result))
    return 0


if __name__ == "__main__":
    sys.exit(main())
