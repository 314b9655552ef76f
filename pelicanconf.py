# --- Site Information ---
SITENAME = 'Edge Images'
SITEURL = 'http://localhost:8000'
SITESUBTITLE = 'responsive images served from the edge'

# --- Paths ---
PATH = 'content'
ARTICLE_PATHS = ['articles']
PAGE_PATHS = ['pages']
STATIC_PATHS = ['media', 'extra']

# --- Content Settings ---
TIMEZONE = 'UTC'
DEFAULT_LANG = 'en'
ARTICLE_SAVE_AS = 'blog/{slug}.html'
ARTICLE_URL = 'blog/{slug}.html'
PAGE_SAVE_AS = '{slug}.html'
PAGE_URL = '{slug}.html'
DELETE_OUTPUT_DIRECTORY = True

# --- Feed Settings (disabled for development) ---
FEED_ALL_ATOM = None
CATEGORY_FEED_ATOM = None
TRANSLATION_FEED_ATOM = None
AUTHOR_FEED_ATOM = None
AUTHOR_FEED_RSS = None

# --- Plugins ---
PLUGIN_PATHS = ['pelican-plugins']
PLUGINS = ['edge_images']

# --- Edge Images ---
# Local builds keep the original files; publishconf.py switches the provider on.
EDGE_IMAGES_PROVIDER = 'none'
EDGE_IMAGES_MAX_WIDTH = 800           # widest an in-content image is rendered
EDGE_IMAGES_MIN_SRCSET_WIDTH = 300
EDGE_IMAGES_MAX_SRCSET_WIDTH = 2400
EDGE_IMAGES_MAX_WIDTH_GAP = 200
EDGE_IMAGES_DEFAULTS = {
    'quality': 85,
    'format': 'auto',
}
EDGE_IMAGES_SIZES = {
    'thumbnail': (150, 150),
    'medium': (300, 300),
    'large': (1024, 1024),
}
EDGE_IMAGES_PICTURE_WRAP = False
EDGE_IMAGES_LAZY_LOADING = True
CACHE_PATH = 'cache'                  # edge image results persist in cache/edge_images

# --- Markdown Extensions ---
MARKDOWN = {
    'extensions': [
        'markdown.extensions.codehilite',
        'markdown.extensions.extra',
        'markdown.extensions.meta',
    ],
    'extension_configs': {
        'markdown.extensions.codehilite': {'css_class': 'highlight'},
    },
    'output_format': 'html5',
}

# --- URL Settings ---
RELATIVE_URLS = True
