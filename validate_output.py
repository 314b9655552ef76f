"""Post-build validator for edge-transformed images in a Pelican site.

Checks every <img> in the output/ directory before deployment:
    - srcset candidates use width descriptors (``640w``)
    - srcset widths are strictly increasing with no duplicates
    - images with a srcset also carry ``sizes``, ``width`` and ``height``
    - no src/srcset URL has been run through an edge endpoint twice

Images the plugin could not process (no dimensions, foreign host) are counted
and listed but are not errors.

Usage:
    python validate_output.py                     # default: output/
    python validate_output.py --output-dir public # custom output directory
    python validate_output.py --strict            # unprocessed images are errors too

Exit codes:
    0 = all validations passed
    1 = validation errors found
"""
from __future__ import annotations

import argparse
import re
import sys
from collections import defaultdict
from pathlib import Path

from bs4 import BeautifulSoup

from edge_images.content import PROCESSED_CLASS
from edge_images.srcset import parse_srcset

# Endpoint markers that must appear at most once per URL.
EDGE_MARKERS = ('/cdn-cgi/image/', '/acd-cgi/img/v1', '.b-cdn.net', '.imgix.net', '/insecure/')

_WIDTH_DESCRIPTOR = re.compile(r'^(\d+)w$')


def is_double_transformed(url: str) -> bool:
    return any(url.count(marker) > 1 for marker in EDGE_MARKERS)


def _positive_int(value) -> bool:
    try:
        return int(str(value)) > 0
    except ValueError:
        return False


def validate_image(img) -> list[str]:
    """Return the problems found on one <img> tag."""
    issues = []
    src = img.get('src', '')
    label = src or '<img without src>'

    if src and is_double_transformed(src):
        issues.append(f"Double-transformed src: {src}")

    srcset = img.get('srcset')
    if not srcset:
        return issues

    widths = []
    for url, descriptor in parse_srcset(srcset):
        if is_double_transformed(url):
            issues.append(f"Double-transformed srcset URL: {url}")
        match = _WIDTH_DESCRIPTOR.match(descriptor or '')
        if not match:
            issues.append(f"Bad srcset descriptor {descriptor!r} in {label}")
            continue
        widths.append(int(match.group(1)))

    if len(set(widths)) != len(widths):
        issues.append(f"Duplicate srcset widths {widths} in {label}")
    elif widths != sorted(widths):
        issues.append(f"Unsorted srcset widths {widths} in {label}")

    if not img.get('sizes'):
        issues.append(f"Missing sizes: {label}")
    for attr in ('width', 'height'):
        if not _positive_int(img.get(attr, '')):
            issues.append(f"Missing or invalid {attr}: {label}")

    return issues


def validate_html(html_file: Path) -> tuple[list[str], list[str], int]:
    """Validate one HTML file. Returns (errors, unprocessed srcs, image count)."""
    errors = []
    unprocessed = []

    try:
        with open(html_file, 'r', encoding='utf-8') as f:
            soup = BeautifulSoup(f.read(), 'html.parser')
    except (OSError, UnicodeDecodeError) as e:
        return [f"Failed to parse: {e}"], [], 0

    images = soup.find_all('img')
    for img in images:
        errors.extend(validate_image(img))
        if PROCESSED_CLASS not in (img.get('class') or []):
            unprocessed.append(img.get('src', ''))

    return errors, unprocessed, len(images)


def validate_output(output_dir: Path) -> tuple[dict, dict, int]:
    """Validate all HTML under *output_dir*. Returns (errors, unprocessed, image count)."""
    errors = defaultdict(list)
    unprocessed = defaultdict(list)
    total_images = 0
    html_files = sorted(output_dir.rglob('*.html'))

    print(f"[INFO] Validating images in {len(html_files)} HTML files in {output_dir}...")

    for html_file in html_files:
        rel_source = str(html_file.relative_to(output_dir))
        file_errors, file_unprocessed, count = validate_html(html_file)
        total_images += count
        if file_errors:
            errors[rel_source].extend(file_errors)
        if file_unprocessed:
            unprocessed[rel_source].extend(file_unprocessed)

    return errors, unprocessed, total_images


def print_report(errors: dict, unprocessed: dict, total_images: int, strict: bool) -> int:
    """Print validation report and return exit code."""
    print("\n" + "=" * 70)
    print("EDGE IMAGES VALIDATION REPORT")
    print("=" * 70)

    if errors:
        total_errors = sum(len(v) for v in errors.values())
        print(f"\n[ERROR] {total_errors} problem(s) found:\n")
        for source, issues in sorted(errors.items()):
            print(f"  {source}:")
            for issue in issues:
                print(f"    - {issue}")
    else:
        print("\n[OK] All srcset/sizes markup validated successfully.")

    unprocessed_count = sum(len(v) for v in unprocessed.values())
    if unprocessed_count:
        level = "[ERROR]" if strict else "[WARN]"
        print(f"\n{level} {unprocessed_count} image(s) were not processed:\n")
        for source, srcs in sorted(unprocessed.items()):
            print(f"  {source}:")
            for src in srcs[:10]:
                print(f"    - {src}")
            if len(srcs) > 10:
                print(f"    ... and {len(srcs) - 10} more")
        print("\n  Hint: add width/height attributes or keep originals under content/media/ so dimensions can be read.")

    print("\n" + "=" * 70)
    print("SUMMARY:")
    print(f"  - Images checked: {total_images}")
    print(f"  - Errors: {sum(len(v) for v in errors.values())}")
    print(f"  - Unprocessed images: {unprocessed_count}")
    print("=" * 70)

    if errors or (strict and unprocessed_count):
        print("\nValidation FAILED - fix errors before deploying!")
        return 1
    print("\nValidation PASSED - images are ready to deploy!")
    return 0


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(description="Validate edge image markup in Pelican output")
    parser.add_argument('--output-dir', default='output', help='Output directory to validate (default: output)')
    parser.add_argument('--strict', action='store_true', help='Treat unprocessed images as errors')
    args = parser.parse_args(argv)

    output_dir = Path(args.output_dir).resolve()
    if not output_dir.exists():
        print(f"[ERROR] Output directory not found: {output_dir}")
        print("Run 'pelican content' to generate the site first.")
        return 1

    errors, unprocessed, total_images = validate_output(output_dir)
    return print_report(errors, unprocessed, total_images, args.strict)


if __name__ == '__main__':
    sys.exit(main())
