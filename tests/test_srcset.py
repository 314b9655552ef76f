import pytest

from edge_images.dimensions import ImageDimensions
from edge_images.providers import AcceleratedDomains, Cloudflare
from edge_images.srcset import (
    SrcsetEntry,
    candidate_widths,
    default_sizes,
    fill_gaps,
    generate,
    parse_srcset,
    srcset_string,
)


def test_candidate_widths_for_content_image():
    assert candidate_widths(800) == [300, 400, 600, 800, 1000, 1200, 1400, 1600, 1800, 2000]


def test_small_breakpoint_included_from_150px():
    assert 300 in candidate_widths(150)
    assert candidate_widths(150) == [150, 300, 375]


def test_small_breakpoint_skipped_below_150px():
    assert candidate_widths(100) == [100]


def test_small_breakpoint_ignores_configured_bounds():
    widths = candidate_widths(800, min_width=400)
    assert widths[:3] == [300, 400, 600]
    assert candidate_widths(200, min_width=100, max_width=250) == [100, 200, 300]


def test_fill_gaps_splits_evenly():
    assert fill_gaps([300, 900], 200) == [300, 500, 700, 900]
    assert fill_gaps([300, 500], 200) == [300, 500]
    assert fill_gaps([], 200) == []


def test_oversized_original_is_kept_but_nothing_else_exceeds_bounds():
    widths = candidate_widths(3000)
    assert widths[-1] == 3000
    assert all(300 <= width <= 2400 for width in widths[:-1])
    assert widths == sorted(set(widths))


def test_custom_bounds():
    widths = candidate_widths(1000, min_width=500, max_width=1500, max_gap=300)
    assert widths == [300, 500, 750, 1000, 1250, 1500]


@pytest.mark.parametrize('width, height', [(800, 600), (1234, 567), (150, 1000), (2999, 17), (640, 427)])
def test_entries_keep_aspect_ratio_and_order(width, height):
    original = ImageDimensions(width, height)
    entries = generate(original, Cloudflare(), '/a.jpg', {'f': 'auto'})

    widths = [entry.width for entry in entries]
    assert widths == sorted(set(widths))
    assert width in widths
    for entry in entries:
        assert abs(entry.height - entry.width * height / width) <= 1
        assert f'width={entry.width}' in entry.url
        assert f'height={entry.height}' in entry.url


def test_single_width_requests_double_density():
    entries = generate(ImageDimensions(100, 80), Cloudflare(), '/small.png', {'f': 'auto'})
    assert entries == [SrcsetEntry(100, 80, '/cdn-cgi/image/dpr=2%2Cf=auto%2Cheight=80%2Cwidth=100/small.png')]


def test_multiple_widths_leave_dpr_alone():
    entries = generate(ImageDimensions(800, 600), Cloudflare(), '/a.jpg', {'dpr': 1})
    assert all('dpr=1' in entry.url for entry in entries)


def test_args_follow_canonical_order():
    entries = generate(ImageDimensions(300, 200), AcceleratedDomains(), '/a.jpg', {'f': 'auto', 'fit': 'cover'})
    assert entries[0].url == '/acd-cgi/img/v1/a.jpg?width=300&height=200&fit=cover&f=auto'


def test_no_dimensions_no_srcset():
    assert generate(None, Cloudflare(), '/a.jpg') == []


def test_srcset_string_and_sizes():
    entries = [SrcsetEntry(300, 200, '/a-300.jpg'), SrcsetEntry(600, 400, '/a-600.jpg')]
    assert srcset_string(entries) == '/a-300.jpg 300w, /a-600.jpg 600w'
    assert default_sizes(800) == '(max-width: 800px) 100vw, 800px'


def test_parse_srcset_keeps_commas_inside_urls():
    value = 'https://acme.imgix.net/a.jpg?auto=format,compress&w=300 300w, https://acme.imgix.net/a.jpg?w=600 600w'
    assert parse_srcset(value) == [
        ('https://acme.imgix.net/a.jpg?auto=format,compress&w=300', '300w'),
        ('https://acme.imgix.net/a.jpg?w=600', '600w'),
    ]


def test_parse_srcset_without_descriptor():
    assert parse_srcset('/a.jpg') == [('/a.jpg', None)]
