import os, sys
sys.path.insert(0, os.path.dirname(__file__))
from pelicanconf import *  # noqa

SITEURL = 'https://images.example.com'
RELATIVE_URLS = False

# Production settings overrides
EDGE_IMAGES_PROVIDER = os.getenv('EDGE_IMAGES_PROVIDER', 'cloudflare')
EDGE_IMAGES_DOMAIN = SITEURL
EDGE_IMAGES_BUNNY_SUBDOMAIN = os.getenv('EDGE_IMAGES_BUNNY_SUBDOMAIN', '')
EDGE_IMAGES_IMGIX_SUBDOMAIN = os.getenv('EDGE_IMAGES_IMGIX_SUBDOMAIN', '')
EDGE_IMAGES_IMGPROXY_URL = os.getenv('EDGE_IMAGES_IMGPROXY_URL', '')
