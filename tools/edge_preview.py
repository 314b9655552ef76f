"""Print the src, srcset and sizes a provider would emit for one image.

Usage:
    python tools/edge_preview.py /media/images/cat.jpg --width 1600 --height 1200
    python tools/edge_preview.py /media/images/cat.jpg --width 1600 --height 1200 \
        --provider bunny --subdomain my-zone --set quality=70 --set fit=contain
"""
from __future__ import annotations

import argparse

from edge_images.images import EdgeImages
from edge_images.srcset import parse_srcset


def parse_overrides(pairs: list[str]) -> dict[str, str]:
    overrides = {}
    for pair in pairs:
        key, sep, value = pair.partition('=')
        if not sep or not key:
            raise argparse.ArgumentTypeError(f'expected key=value, got {pair!r}')
        overrides[key.strip()] = value.strip()
    return overrides


def build_settings(args) -> dict:
    settings = {
        'EDGE_IMAGES_PROVIDER': args.provider,
        'EDGE_IMAGES_DOMAIN': args.domain,
        'EDGE_IMAGES_MAX_WIDTH': args.max_width,
        'PATH': args.content,
        'EDGE_IMAGES_CACHE_PATH': '',
    }
    if args.provider == 'bunny':
        settings['EDGE_IMAGES_BUNNY_SUBDOMAIN'] = args.subdomain
    elif args.provider == 'imgix':
        settings['EDGE_IMAGES_IMGIX_SUBDOMAIN'] = args.subdomain
    elif args.provider == 'imgproxy':
        settings['EDGE_IMAGES_IMGPROXY_URL'] = args.imgproxy_url
    return settings


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(description='Preview edge image URLs for a provider')
    parser.add_argument('src', help='Image path, e.g. /media/images/cat.jpg')
    parser.add_argument('--width', type=int, help='Image width (read from the file under --content if omitted)')
    parser.add_argument('--height', type=int, help='Image height (read from the file under --content if omitted)')
    parser.add_argument('--size', help='Named size, e.g. large')
    parser.add_argument('--provider', default='cloudflare', help='none, cloudflare, accelerated_domains, bunny, imgix, imgproxy')
    parser.add_argument('--domain', default='', help='Site domain prefixed to same-host URLs')
    parser.add_argument('--subdomain', default='', help='Bunny/Imgix subdomain')
    parser.add_argument('--imgproxy-url', default='', help='imgproxy base URL')
    parser.add_argument('--max-width', type=int, default=800, help='Content width ceiling (default: 800)')
    parser.add_argument('--no-constrain', action='store_true', help='Do not cap the width at --max-width')
    parser.add_argument('--content', default='content', help='Pelican content directory for dimension lookup')
    parser.add_argument('--set', action='append', default=[], metavar='KEY=VALUE', help='Transform override (repeatable)')
    args = parser.parse_args(argv)

    try:
        overrides = parse_overrides(args.set)
    except argparse.ArgumentTypeError as e:
        print(f'[ERROR] {e}')
        return 2

    edge_images = EdgeImages.from_settings(build_settings(args))
    image = edge_images.transform(
        args.src,
        width=args.width,
        height=args.height,
        size=args.size,
        overrides=overrides,
        constrain=not args.no_constrain,
    )
    edge_images.close()
    if image is None:
        print(f'[WARN] {args.src} would be left untouched (no dimensions, or a foreign host)')
        return 1

    print(f'[INFO] Provider: {edge_images.provider.slug}')
    print(f'[INFO] Size:     {image.width}x{image.height}')
    print(f'src:    {image.src}')
    if image.srcset:
        print('srcset:')
        for url, descriptor in parse_srcset(image.srcset):
            print(f'  {descriptor:>6}  {url}')
        print(f'sizes:  {image.sizes}')
    else:
        print('[INFO] No srcset (passthrough provider or SVG)')
    return 0


if __name__ == '__main__':
    raise SystemExit(main())
