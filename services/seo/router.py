"""
services/seo/router.py
sitemap.xml and robots.txt for search engines.
"""

import re
from datetime import datetime, timezone
from xml.sax.saxutils import escape

from fastapi import APIRouter, Depends
from fastapi.responses import PlainTextResponse, Response
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from config.database import get_db
from config.settings import settings
from shared.models.models import Course, University

router = APIRouter(tags=["SEO"])

STATIC_PAGES = [
    ("/", "1.0", "daily"),
    ("/courses", "0.9", "daily"),
    ("/counselors", "0.8", "weekly"),
    ("/office-location", "0.7", "monthly"),
    ("/privacy-policy", "0.5", "yearly"),
]

_NON_SLUG = re.compile(r"[^a-z0-9]+")


def slugify(name: str) -> str:
    return _NON_SLUG.sub("-", name.lower())


def render_sitemap(base_url: str, pages, lastmod: str) -> str:
    entries = "\n".join(
        f"  <url>\n"
        f"    <loc>{escape(base_url + path)}</loc>\n"
        f"    <lastmod>{lastmod}</lastmod>\n"
        f"    <changefreq>{changefreq}</changefreq>\n"
        f"    <priority>{priority}</priority>\n"
        f"  </url>"
        for path, priority, changefreq in pages
    )
    return (
        '<?xml version="1.0" encoding="UTF-8"?>\n'
        '<urlset xmlns="http://www.sitemaps.org/schemas/sitemap/0.9">\n'
        f"{entries}\n"
        "</urlset>"
    )


@router.get("/api/sitemap.xml", include_in_schema=False)
async def sitemap(db: AsyncSession = Depends(get_db)):
    courses = await db.execute(select(Course.id, Course.name).order_by(Course.id))
    universities = await db.execute(select(University.id, University.name).order_by(University.id))

    pages = list(STATIC_PAGES)
    pages += [(f"/course/{c.id}/{slugify(c.name)}", "0.8", "weekly") for c in courses]
    pages += [(f"/university/{u.id}/{slugify(u.name)}", "0.7", "weekly") for u in universities]

    lastmod = datetime.now(timezone.utc).date().isoformat()
    xml = render_sitemap(settings.SITE_URL.rstrip("/"), pages, lastmod)
    return Response(content=xml, media_type="application/xml")


@router.get("/robots.txt", include_in_schema=False, response_class=PlainTextResponse)
async def robots():
    base_url = settings.SITE_URL.rstrip("/")
    return (
        "User-agent: *\n"
        "Allow: /\n"
        "Disallow: /admin\n"
        "Disallow: /api/\n"
        "Disallow: /private\n"
        "Disallow: /*?*\n"
        "Allow: /api/sitemap.xml\n"
        "\n"
        f"Sitemap: {base_url}/api/sitemap.xml"
    )
