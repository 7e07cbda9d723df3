import logging
import re
import uuid
from datetime import datetime

from sqlalchemy import (
    Column, Integer, String, DateTime, JSON, Text, Boolean, Float, event, inspect
)
from sqlalchemy.orm import validates

from core.errors import ValidationError
from core.extensions import db
from core.localization import CONTENT_LANGUAGES
from core.security_manager import hash_password, is_password_hash, is_valid_email, normalize_email, verify_password
from core.template_engine import template_engine
from services.geocoding import geocoder

logger = logging.getLogger(__name__)

SLUG_STRIP_PATTERN = re.compile(r'[^a-z0-9\s-]')


def new_id() -> str:
    return str(uuid.uuid4())


def isoformat(value):
    return value.isoformat() if value else None


def slugify(text: str) -> str:
    slug = SLUG_STRIP_PATTERN.sub('', (text or '').lower()).strip()
    slug = re.sub(r'\s+', '-', slug)
    return re.sub(r'-+', '-', slug)


class DocumentMixin:
    """Id and timestamp columns shared by every document"""

    id = Column(String(36), primary_key=True, default=new_id)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)

    def _base_dict(self):
        return {
            '_id': self.id,
            'id': self.id,
            'createdAt': isoformat(self.created_at),
            'updatedAt': isoformat(self.updated_at),
        }


class Admin(DocumentMixin, db.Model):
    __tablename__ = 'admins'

    email = Column(String(255), nullable=False, unique=True, index=True)
    password = Column(String(255), nullable=False)  # pbkdf2 hash, never serialised
    is_active = Column(Boolean, default=True, nullable=False)
    last_login = Column(DateTime)

    @validates('email')
    def _validate_email(self, key, value):
        value = normalize_email(value)
        if not is_valid_email(value):
            raise ValidationError('Please provide a valid email address')
        return value

    @validates('password')
    def _hash_password(self, key, value):
        if is_password_hash(value):
            return value
        if not value or len(value) < 6:
            raise ValidationError('Password must be at least 6 characters')
        return hash_password(value)

    def check_password(self, candidate: str) -> bool:
        return verify_password(candidate, self.password)

    def update_last_login(self):
        self.last_login = datetime.utcnow()

    def to_dict(self):
        data = self._base_dict()
        data.update({
            'email': self.email,
            'isActive': self.is_active,
            'lastLogin': isoformat(self.last_login),
        })
        return data


class Section(DocumentMixin, db.Model):
    __tablename__ = 'sections'

    title = Column(String(500), nullable=False, index=True)
    body_text = Column(Text, nullable=False)
    images = Column(JSON, default=list, nullable=False)
    language = Column(String(5), default='en', nullable=False, index=True)
    page_number = Column(Integer, index=True)
    section_id = Column(String(255), index=True)
    is_active = Column(Boolean, default=True, nullable=False, index=True)
    translations = Column(JSON, default=dict, nullable=False)

    @validates('language')
    def _validate_language(self, key, value):
        value = value or 'en'
        if value not in CONTENT_LANGUAGES:
            raise ValidationError(f"language must be one of: {', '.join(CONTENT_LANGUAGES)}")
        return value

    def to_dict(self, include_translations=True):
        data = self._base_dict()
        data.update({
            'title': self.title,
            'bodyText': self.body_text,
            'images': list(self.images or []),
            'language': self.language,
            'pageNumber': self.page_number,
            'sectionId': self.section_id,
            'isActive': self.is_active,
        })
        if include_translations:
            data['translations'] = dict(self.translations or {})
        return data


class Page(DocumentMixin, db.Model):
    __tablename__ = 'pages'

    title = Column(String(500), nullable=False, index=True)
    description = Column(Text)
    slug = Column(String(255), nullable=False, unique=True, index=True)
    language = Column(String(5), default='en', nullable=False, index=True)
    page_number = Column(Integer, index=True)
    is_active = Column(Boolean, default=True, nullable=False, index=True)
    sections = Column(JSON, default=list, nullable=False)  # ordered Section ids
    translations = Column(JSON, default=dict, nullable=False)
    page_metadata = Column('metadata', JSON, default=dict, nullable=False)

    @validates('language')
    def _validate_language(self, key, value):
        value = value or 'en'
        if value not in CONTENT_LANGUAGES:
            raise ValidationError(f"language must be one of: {', '.join(CONTENT_LANGUAGES)}")
        return value

    @property
    def sections_count(self):
        return len(self.sections or [])

    def to_dict(self, sections=None):
        """
        Serialise the page; ``sections`` replaces the id list with
        already-serialised Section documents when the caller populated them.
        """
        data = self._base_dict()
        data.update({
            'title': self.title,
            'description': self.description,
            'slug': self.slug,
            'language': self.language,
            'pageNumber': self.page_number,
            'isActive': self.is_active,
            'sections': sections if sections is not None else list(self.sections or []),
            'sectionsCount': self.sections_count,
            'translations': dict(self.translations or {}),
            'metadata': dict(self.page_metadata or {}),
        })
        return data


class Blog(DocumentMixin, db.Model):
    __tablename__ = 'blogs'

    title = Column(String(500), nullable=False, index=True)
    slug = Column(String(255), nullable=False, unique=True, index=True)
    excerpt = Column(Text, default='')
    content = Column(Text, default='')
    featured_image = Column(Text, nullable=False)
    images = Column(JSON, default=list, nullable=False)
    pdf_url = Column(String(1024))
    tags = Column(JSON, default=list, nullable=False)
    author = Column(String(255), default='CBM')
    is_published = Column(Boolean, default=True, nullable=False, index=True)
    is_featured = Column(Boolean, default=False, nullable=False, index=True)
    published_at = Column(DateTime, index=True)
    view_count = Column(Integer, default=0, nullable=False)
    meta_description = Column(Text)
    translations = Column(JSON, default=dict, nullable=False)

    @validates('content')
    def _sanitize_content(self, key, value):
        return template_engine.sanitize_html(value)

    def increment_view_count(self):
        self.view_count = (self.view_count or 0) + 1

    def to_dict(self, include_content=True):
        data = self._base_dict()
        data.update({
            'title': self.title,
            'slug': self.slug,
            'excerpt': self.excerpt,
            'featuredImage': self.featured_image,
            'images': list(self.images or []),
            'pdfUrl': self.pdf_url,
            'tags': list(self.tags or []),
            'author': self.author,
            'isPublished': self.is_published,
            'isFeatured': self.is_featured,
            'publishedAt': isoformat(self.published_at),
            'viewCount': self.view_count or 0,
            'metaDescription': self.meta_description,
            'translations': dict(self.translations or {}),
        })
        if include_content:
            data['content'] = self.content
        return data


class ContactOffice(DocumentMixin, db.Model):
    __tablename__ = 'contact_offices'

    region_name = Column(String(255), nullable=False, index=True)
    region = Column(String(255), nullable=False)
    country = Column(String(255), nullable=False)
    office_name = Column(String(255), nullable=False)
    address = Column(Text, nullable=False)
    phone = Column(String(100), nullable=False)
    emails = Column(JSON, default=list, nullable=False)
    is_lab_facility = Column(Boolean, default=False, nullable=False)
    notes = Column(Text, default='')
    image_url = Column(String(1024), default='')
    latitude = Column(Float)
    longitude = Column(Float)
    region_order = Column(Integer, default=0, nullable=False, index=True)
    office_order = Column(Integer, default=0, nullable=False, index=True)
    translations = Column(JSON, default=dict, nullable=False)

    # set by the update handler when the request itself carried both coordinates
    coordinates_explicit = False

    def needs_geocoding(self, is_insert: bool) -> bool:
        """
        Geocode when coordinates are missing, or when the address changed
        and the same write did not set coordinates itself.
        """
        if not self.address:
            return False
        if self.latitude is None or self.longitude is None:
            return True
        if is_insert:
            return False
        if self.coordinates_explicit:
            return False
        state = inspect(self)
        address_changed = state.attrs.address.history.has_changes()
        coordinates_changed = (state.attrs.latitude.history.has_changes()
                               or state.attrs.longitude.history.has_changes())
        return address_changed and not coordinates_changed

    def to_dict(self):
        return {
            '_id': self.id,
            'id': self.id,
            'region_name': self.region_name,
            'region': self.region,
            'country': self.country,
            'office_name': self.office_name,
            'address': self.address,
            'phone': self.phone,
            'emails': list(self.emails or []),
            'is_lab_facility': self.is_lab_facility,
            'notes': self.notes or '',
            'image_url': self.image_url or '',
            'latitude': self.latitude,
            'longitude': self.longitude,
            'region_order': self.region_order,
            'office_order': self.office_order,
            'translations': dict(self.translations or {}),
            'createdAt': isoformat(self.created_at),
            'updatedAt': isoformat(self.updated_at),
        }


class IndustryStat(DocumentMixin, db.Model):
    __tablename__ = 'industry_stats'

    number = Column(String(50), nullable=False)
    label = Column(String(255), nullable=False, index=True)
    description = Column(Text, nullable=False)
    order = Column(Integer, default=0, nullable=False, index=True)
    is_active = Column(Boolean, default=True, nullable=False, index=True)
    translations = Column(JSON, default=dict, nullable=False)

    @validates('number', 'label', 'description')
    def _validate_required(self, key, value):
        value = (str(value) if value is not None else '').strip()
        if not value:
            raise ValidationError(f"{key} is required")
        return value

    def to_dict(self):
        data = self._base_dict()
        data.update({
            'number': self.number,
            'label': self.label,
            'description': self.description,
            'order': self.order,
            'isActive': self.is_active,
            'translations': dict(self.translations or {}),
        })
        return data


class Career(DocumentMixin, db.Model):
    __tablename__ = 'careers'

    title = Column(String(255), nullable=False, index=True)
    department = Column(String(255), default='')
    location = Column(String(255), default='')
    employment_type = Column(String(100), default='Full-time')
    description = Column(Text, default='')
    requirements = Column(JSON, default=list, nullable=False)
    is_active = Column(Boolean, default=True, nullable=False, index=True)
    order = Column(Integer, default=0, nullable=False, index=True)
    translations = Column(JSON, default=dict, nullable=False)

    @validates('title')
    def _validate_title(self, key, value):
        value = (str(value) if value is not None else '').strip()
        if not value:
            raise ValidationError('title is required')
        return value

    def to_dict(self):
        data = self._base_dict()
        data.update({
            'title': self.title,
            'department': self.department,
            'location': self.location,
            'employmentType': self.employment_type,
            'description': self.description,
            'requirements': list(self.requirements or []),
            'isActive': self.is_active,
            'order': self.order,
            'translations': dict(self.translations or {}),
        })
        return data


# Pre-save hooks

def _geocode_office(target: ContactOffice, is_insert: bool):
    if not geocoder.enabled or not target.needs_geocoding(is_insert):
        return
    try:
        result = geocoder.lookup(target.address)
    except Exception as e:
        logger.error(f"Geocoding hook failed for office '{target.office_name}': {e}", exc_info=True)
        return
    if result is not None:
        target.latitude = result.latitude
        target.longitude = result.longitude


@event.listens_for(ContactOffice, 'before_insert')
def _contact_office_before_insert(mapper, connection, target):
    _geocode_office(target, is_insert=True)


@event.listens_for(ContactOffice, 'before_update')
def _contact_office_before_update(mapper, connection, target):
    _geocode_office(target, is_insert=False)


def _stamp_published(target: Blog):
    # is_published is still None before the column default applies on insert
    if target.is_published is not False and target.published_at is None:
        target.published_at = datetime.utcnow()


@event.listens_for(Blog, 'before_insert')
def _blog_before_insert(mapper, connection, target):
    _stamp_published(target)


@event.listens_for(Blog, 'before_update')
def _blog_before_update(mapper, connection, target):
    _stamp_published(target)


@event.listens_for(Page, 'before_update')
def _page_before_update(mapper, connection, target):
    metadata = dict(target.page_metadata or {})
    metadata['lastModified'] = datetime.utcnow().isoformat()
    target.page_metadata = metadata
