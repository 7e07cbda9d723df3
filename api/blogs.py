# api/blogs.py
"""
Blog API: public listing, search and reading; admin authoring with
media uploads and machine translation
"""

import logging
import time
from typing import Any, Dict, Optional

from flask import Blueprint, request
from sqlalchemy import asc, desc

from api.responses import success
from core.database_models import Blog, slugify
from core.errors import NotFoundError, ValidationError
from core.extensions import db
from core.localization import overlay_translation
from core.pagination import blog_pagination, page_params, parse_bool, parse_int, slice_page
from middleware.security import is_admin_request, require_admin
from middleware.upload import image_file, parse_list_field, pdf_file, request_payload
from services.storage import StorageError, storage, to_data_url
from services.translation import merge_translations, translator

blogs_bp = Blueprint('blogs', __name__, url_prefix='/api/blogs')
logger = logging.getLogger(__name__)

# wire name -> column
BLOG_FIELDS = {
    'title': 'title',
    'slug': 'slug',
    'excerpt': 'excerpt',
    'content': 'content',
    'featuredImage': 'featured_image',
    'images': 'images',
    'pdfUrl': 'pdf_url',
    'tags': 'tags',
    'author': 'author',
    'isPublished': 'is_published',
    'isFeatured': 'is_featured',
    'metaDescription': 'meta_description',
}
BOOLEAN_FIELDS = ('isPublished', 'isFeatured')
LIST_FIELDS = ('tags', 'images')
TRANSLATED_FIELDS = ('title', 'excerpt', 'content', 'tags', 'metaDescription')

SORT_COLUMNS = {
    'publishedAt': Blog.published_at,
    'createdAt': Blog.created_at,
    'title': Blog.title,
    'viewCount': Blog.view_count,
}


def _tag_matches(blog: Blog, needle: str) -> bool:
    needle = needle.lower()
    return any(needle in str(tag).lower() for tag in (blog.tags or []))


def _search_matches(blog: Blog, needle: str) -> bool:
    needle = needle.lower()
    haystacks = (blog.title, blog.excerpt, blog.content)
    return any(needle in (text or '').lower() for text in haystacks) or _tag_matches(blog, needle)


def _paginated(blogs, page: int, limit: int, include_content: bool = False, **extra):
    data = {
        'blogs': [blog.to_dict(include_content=include_content) for blog in slice_page(blogs, page, limit)],
        'pagination': blog_pagination(page, limit, len(blogs)),
    }
    data.update(extra)
    return success(data)


def _find_blog(id_or_slug: str) -> Optional[Blog]:
    return db.session.get(Blog, id_or_slug) or Blog.query.filter_by(slug=id_or_slug).first()


def unique_slug(base: str, exclude_id: Optional[str] = None) -> str:
    """``base``, or ``base-2``, ``base-3``... whichever is not taken"""
    candidate = base
    counter = 2
    while True:
        query = Blog.query.filter_by(slug=candidate)
        if exclude_id is not None:
            query = query.filter(Blog.id != exclude_id)
        if query.first() is None:
            return candidate
        candidate = f"{base}-{counter}"
        counter += 1


def _blog_values(payload: Dict[str, Any]) -> Dict[str, Any]:
    """Wire payload to column values, with form-encoded lists and booleans decoded"""
    values = {}
    for field, column in BLOG_FIELDS.items():
        if field not in payload:
            continue
        value = payload[field]
        if field in LIST_FIELDS:
            value = parse_list_field(value, field)
        elif field in BOOLEAN_FIELDS:
            value = parse_bool(value, default=None)
            if value is None:
                continue
        values[column] = value
    return values


def _attach_uploads(values: Dict[str, Any]):
    featured = image_file('featuredImageFile')
    if featured is not None:
        try:
            values['featured_image'] = storage.upload(
                featured.data, featured.filename, featured.mimetype,
                folder='blog/featured-images',
                public_id=f"blog-{int(time.time() * 1000)}",
                resource_type='image',
                tags=['blog', 'featured-image', 'cbm']
            )
        except StorageError as e:
            logger.warning(f"Featured image upload failed, using inline data URL: {e}")
            values['featured_image'] = to_data_url(featured.data, featured.mimetype)

    pdf = pdf_file('pdfFile')
    if pdf is not None:
        try:
            values['pdf_url'] = storage.upload(
                pdf.data, pdf.filename, pdf.mimetype,
                folder='blog/pdfs',
                public_id=f"blog-pdf-{int(time.time() * 1000)}",
                resource_type='raw',
                tags=['blog', 'pdf', 'cbm']
            )
        except StorageError as e:
            logger.warning(f"PDF upload failed: {e}")


def _translation_source(values: Dict[str, Any]) -> Dict[str, Any]:
    source = {}
    for field in TRANSLATED_FIELDS:
        column = BLOG_FIELDS[field]
        if column in values and values[column]:
            source[field] = values[column]
    return source


@blogs_bp.route('', methods=['GET'])
@blogs_bp.route('/', methods=['GET'])
def list_blogs():
    page, limit = page_params(request.args)
    include_unpublished = parse_bool(request.args.get('includeUnpublished'), False) and is_admin_request()

    sort_by = request.args.get('sortBy', 'publishedAt')
    if sort_by not in SORT_COLUMNS:
        raise ValidationError(f"sortBy must be one of: {', '.join(SORT_COLUMNS)}")
    direction = desc if request.args.get('sortOrder', 'desc') == 'desc' else asc

    query = Blog.query
    if not include_unpublished:
        query = query.filter(Blog.is_published.is_(True))
    if parse_bool(request.args.get('featured'), False):
        query = query.filter(Blog.is_featured.is_(True))
    search = request.args.get('search')
    if search:
        query = query.filter(Blog.title.ilike(f"%{search}%"))

    blogs = query.order_by(direction(SORT_COLUMNS[sort_by]), desc(Blog.created_at)).all()

    tag = request.args.get('tag')
    if tag:
        blogs = [blog for blog in blogs if _tag_matches(blog, tag)]

    return _paginated(blogs, page, limit, include_content=include_unpublished)


@blogs_bp.route('/featured', methods=['GET'])
def featured_blogs():
    limit = parse_int(request.args.get('limit'), 5, 'limit', minimum=1)
    blogs = (Blog.query
             .filter(Blog.is_published.is_(True), Blog.is_featured.is_(True))
             .order_by(desc(Blog.published_at))
             .limit(limit)
             .all())
    return success([blog.to_dict(include_content=False) for blog in blogs])


@blogs_bp.route('/tags', methods=['GET'])
def all_tags():
    tags = set()
    for blog in Blog.query.filter(Blog.is_published.is_(True)).all():
        tags.update(str(tag) for tag in (blog.tags or []))
    return success(sorted(tags))


@blogs_bp.route('/search', methods=['GET'])
def search_blogs():
    query_text = (request.args.get('q') or '').strip()
    if not query_text:
        raise ValidationError('Search query is required')
    page, limit = page_params(request.args)

    blogs = Blog.query.filter(Blog.is_published.is_(True)).order_by(desc(Blog.published_at)).all()
    blogs = [blog for blog in blogs if _search_matches(blog, query_text)]
    return _paginated(blogs, page, limit, query=query_text)


@blogs_bp.route('/tag/<tag>', methods=['GET'])
def blogs_by_tag(tag):
    page, limit = page_params(request.args)
    blogs = Blog.query.filter(Blog.is_published.is_(True)).order_by(desc(Blog.published_at)).all()
    blogs = [blog for blog in blogs if _tag_matches(blog, tag)]
    return _paginated(blogs, page, limit, tag=tag)


@blogs_bp.route('/<id_or_slug>', methods=['GET'])
def get_blog(id_or_slug):
    blog = _find_blog(id_or_slug)
    if blog is None or not blog.is_published:
        raise NotFoundError('Blog post not found')

    blog.increment_view_count()
    db.session.commit()

    data = overlay_translation(blog.to_dict(), blog.translations, request.args.get('lang'), TRANSLATED_FIELDS)
    return success(data)


@blogs_bp.route('', methods=['POST'])
@blogs_bp.route('/', methods=['POST'])
@require_admin
def create_blog():
    values = _blog_values(request_payload())
    _attach_uploads(values)

    if not str(values.get('featured_image') or '').strip():
        raise ValidationError('Featured image is required')
    title = str(values.get('title') or '').strip()
    if not title:
        raise ValidationError('Title is required')
    values['title'] = title

    base_slug = str(values.get('slug') or '').strip() or slugify(title)
    if not base_slug:
        raise ValidationError('Could not derive a slug from the title')
    values['slug'] = unique_slug(base_slug)

    blog = Blog(**values)
    blog.translations = translator.translate_fields(
        _translation_source(values), list_fields=('tags',), html_fields=('content',)
    )
    db.session.add(blog)
    db.session.commit()

    logger.info(f"Blog created: {blog.slug} ({len(blog.translations)} translations)")
    return success(blog.to_dict(), status=201, message='Blog post created successfully')


@blogs_bp.route('/<blog_id>', methods=['PUT'])
@require_admin
def update_blog(blog_id):
    blog = db.session.get(Blog, blog_id)
    if blog is None:
        raise NotFoundError('Blog post not found')

    values = _blog_values(request_payload())
    _attach_uploads(values)

    if 'title' in values:
        values['title'] = str(values['title'] or '').strip()
        if not values['title']:
            raise ValidationError('Title is required')
    if 'featured_image' in values and not str(values['featured_image'] or '').strip():
        raise ValidationError('Featured image is required')
    if 'slug' in values:
        slug = str(values['slug'] or '').strip()
        if not slug:
            raise ValidationError('Slug cannot be empty')
        if slug != blog.slug and unique_slug(slug, exclude_id=blog.id) != slug:
            raise ValidationError('Slug is already in use')
        values['slug'] = slug

    fresh = translator.translate_fields(
        _translation_source(values), list_fields=('tags',), html_fields=('content',)
    )
    for column, value in values.items():
        setattr(blog, column, value)
    if fresh:
        blog.translations = merge_translations(blog.translations, fresh)

    db.session.commit()
    logger.info(f"Blog updated: {blog.id}")
    return success(blog.to_dict(), message='Blog post updated successfully')


@blogs_bp.route('/<blog_id>', methods=['DELETE'])
@require_admin
def delete_blog(blog_id):
    blog = db.session.get(Blog, blog_id)
    if blog is None:
        raise NotFoundError('Blog post not found')
    db.session.delete(blog)
    db.session.commit()
    logger.info(f"Blog deleted: {blog_id}")
    return success(message='Blog post deleted successfully')
