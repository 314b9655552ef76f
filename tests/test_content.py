from bs4 import BeautifulSoup

from edge_images.content import (
    PICTURE_CLASS,
    PROCESSED_CLASS,
    requested_size,
    should_constrain,
    transform_content,
)


def first_img(html):
    return BeautifulSoup(html, 'html.parser').find('img')


def test_rewrites_img(make_edge_images):
    html = '<p><img alt="Cat" src="../media/images/cat.jpg"></p>'
    img = first_img(transform_content(html, make_edge_images()))

    assert img['src'].startswith('/cdn-cgi/image/')
    assert img['alt'] == 'Cat'
    assert (img['width'], img['height']) == ('800', '600')
    assert img['srcset'].endswith('2000w')
    assert img['sizes'] == '(max-width: 800px) 100vw, 800px'
    assert img['class'] == [PROCESSED_CLASS]


def test_relative_src_resolves_against_source_file(make_edge_images, content_dir):
    html = '<img src="../media/images/small.png">'
    source_path = str(content_dir / 'articles' / 'post.md')
    img = first_img(transform_content(html, make_edge_images(), source_path))
    assert (img['width'], img['height']) == ('100', '80')
    assert 'dpr=2' in img['srcset']


def test_processed_images_are_skipped(make_edge_images):
    html = f'<img class="{PROCESSED_CLASS}" src="/media/images/cat.jpg">'
    assert transform_content(html, make_edge_images()) == html


def test_second_pass_is_a_no_op(make_edge_images):
    edge_images = make_edge_images()
    once = transform_content('<img src="/media/images/cat.jpg">', edge_images)
    assert transform_content(once, edge_images) == once


def test_transform_attributes_become_args(make_edge_images):
    html = '<img src="/media/images/cat.jpg" fit="contain" quality="60" gravity="north" loading="lazy">'
    img = first_img(transform_content(html, make_edge_images()))

    assert 'fit=contain' in img['src']
    assert 'q=60' in img['src']
    assert 'g=top' in img['src']
    for name in ('fit', 'quality', 'gravity'):
        assert not img.has_attr(name)
    assert img['loading'] == 'lazy'


def test_wide_figures_are_not_constrained(make_edge_images):
    html = '<figure class="alignwide"><img src="/media/images/cat.jpg"></figure>'
    img = first_img(transform_content(html, make_edge_images()))
    assert img['width'] == '1600'


def test_size_class_selects_named_size(make_edge_images):
    html = '<img class="size-thumbnail" src="/media/images/cat.jpg">'
    img = first_img(transform_content(html, make_edge_images()))
    assert (img['width'], img['height']) == ('150', '150')
    assert img['class'] == ['size-thumbnail', PROCESSED_CLASS]


def test_explicit_dimensions_are_respected(make_edge_images):
    html = '<img src="/media/images/cat.jpg" width="400" height="300" sizes="33vw">'
    img = first_img(transform_content(html, make_edge_images()))
    assert 'width=400' in img['src']
    assert img['sizes'] == '33vw'


def test_picture_wrap(make_edge_images):
    html = '<a href="/big.jpg"><img src="/media/images/cat.jpg"></a>'
    soup = BeautifulSoup(transform_content(html, make_edge_images(EDGE_IMAGES_PICTURE_WRAP=True)), 'html.parser')

    picture = soup.find('picture')
    assert picture['class'] == [PICTURE_CLASS]
    assert picture['style'] == '--max-width: 800px;'
    assert picture.parent.name == 'a'
    assert picture.find('img') is not None


def test_picture_wrap_skips_existing_picture(make_edge_images):
    html = '<picture><img src="/media/images/cat.jpg"></picture>'
    soup = BeautifulSoup(transform_content(html, make_edge_images(EDGE_IMAGES_PICTURE_WRAP=True)), 'html.parser')
    assert len(soup.find_all('picture')) == 1


def test_passthrough_provider_adds_dimensions_only(make_edge_images):
    html = '<img src="../media/images/cat.jpg">'
    img = first_img(transform_content(html, make_edge_images(EDGE_IMAGES_PROVIDER='none')))
    assert img['src'] == '../media/images/cat.jpg'
    assert (img['width'], img['height']) == ('800', '600')
    assert not img.has_attr('srcset')


def test_untouched_content_is_returned_verbatim(make_edge_images):
    edge_images = make_edge_images()
    assert transform_content('<p>No images here</p>', edge_images) == '<p>No images here</p>'
    html = '<p><img src="https://elsewhere.example/a.jpg" ></p>'
    assert transform_content(html, edge_images) == html
    assert transform_content('', edge_images) == ''


def test_disabled_leaves_content_alone(make_edge_images):
    html = '<img src="/media/images/cat.jpg">'
    assert transform_content(html, make_edge_images(EDGE_IMAGES_DISABLE=True)) == html


def test_helpers():
    img = first_img('<figure class="full-width"><img class="size-full size-large"></figure>')
    assert requested_size(img) == 'large'
    assert not should_constrain(img)
    assert should_constrain(first_img('<img class="alignleft">'))


def test_lazy_loading_defaults(make_edge_images):
    img = first_img(transform_content('<img src="/media/images/cat.jpg">', make_edge_images()))
    assert img['loading'] == 'lazy'
    assert img['decoding'] == 'async'


def test_authors_loading_choice_wins(make_edge_images):
    html = '<img src="/media/images/cat.jpg" loading="eager" decoding="sync">'
    img = first_img(transform_content(html, make_edge_images()))
    assert img['loading'] == 'eager'
    assert img['decoding'] == 'sync'


def test_lazy_loading_can_be_turned_off(make_edge_images):
    edge_images = make_edge_images(EDGE_IMAGES_LAZY_LOADING=False)
    img = first_img(transform_content('<img src="/media/images/cat.jpg">', edge_images))
    assert not img.has_attr('loading')
    assert not img.has_attr('decoding')
