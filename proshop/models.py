from flask_sqlalchemy import SQLAlchemy
from flask_login import UserMixin
from werkzeug.security import generate_password_hash, check_password_hash

from .utils import utc_now_naive

db = SQLAlchemy()


def _json_value(value):
    if hasattr(value, 'isoformat'):
        return value.isoformat()
    return value


class ContentRecord:
    """Columns shared by every content table, plus a flat JSON view of the row."""

    id = db.Column(db.Integer, primary_key=True)
    created_at = db.Column(db.DateTime, default=utc_now_naive, index=True)
    updated_at = db.Column(db.DateTime, default=utc_now_naive, onupdate=utc_now_naive)

    def to_dict(self):
        return {column.name: _json_value(getattr(self, column.key)) for column in self.__table__.columns}

    def __repr__(self):
        return f'<{type(self).__name__} {self.id}>'


class User(UserMixin, db.Model):
    id = db.Column(db.Integer, primary_key=True)
    username = db.Column(db.String(80), unique=True, nullable=False)
    email = db.Column(db.String(120), unique=True, nullable=False)
    password_hash = db.Column(db.String(256), nullable=False)
    created_at = db.Column(db.DateTime, default=utc_now_naive)
    last_login_at = db.Column(db.DateTime)

    def set_password(self, password):
        self.password_hash = generate_password_hash(password)

    def check_password(self, password):
        return check_password_hash(self.password_hash, password)


class Product(ContentRecord, db.Model):
    __tablename__ = 'products'

    name = db.Column(db.String(200), nullable=False)
    slug = db.Column(db.String(200), nullable=False, index=True)
    category = db.Column(db.String(100), nullable=False, default='Single-Split', index=True)
    description = db.Column(db.Text, nullable=False, default='')
    image_path = db.Column(db.String(500))
    image_object_path = db.Column(db.String(300))
    features = db.Column(db.JSON, nullable=False, default=list)
    detailed_features = db.Column(db.JSON)  # [{"name": ..., "desc": ...}]
    ideal_applications = db.Column(db.JSON)  # [{"icon": ..., "title": ..., "desc": ...}]


class Portfolio(ContentRecord, db.Model):
    __tablename__ = 'portfolios'

    title = db.Column(db.String(200), nullable=False)
    slug = db.Column(db.String(200), nullable=False, index=True)
    category = db.Column(db.String(100), nullable=False, default='Residential', index=True)
    location = db.Column(db.String(200), nullable=False, default='')
    products_used = db.Column(db.String(500), nullable=False, default='')
    image_path = db.Column(db.String(500))
    image_object_path = db.Column(db.String(300))
    summary = db.Column(db.Text, nullable=False, default='')
    challenge = db.Column(db.Text, nullable=False, default='')
    solution = db.Column(db.Text, nullable=False, default='')
    impact = db.Column(db.Text, nullable=False, default='')


class Article(ContentRecord, db.Model):
    __tablename__ = 'articles'

    title = db.Column(db.String(300), nullable=False)
    slug = db.Column(db.String(300), nullable=False, index=True)
    excerpt = db.Column(db.Text, nullable=False, default='')
    content = db.Column(db.Text, nullable=False, default='')
    image_path = db.Column(db.String(500))
    image_object_path = db.Column(db.String(300))
    category = db.Column(db.String(100), nullable=False, default='Education', index=True)
    author = db.Column(db.String(120), nullable=False, default='Admin')
    published_at = db.Column(db.Date, index=True)
    read_time = db.Column(db.String(20), nullable=False, default='1 min')


class Award(ContentRecord, db.Model):
    __tablename__ = 'awards'

    year = db.Column(db.String(20), nullable=False, index=True)  # free text, e.g. "2019-2020"
    name = db.Column(db.String(300), nullable=False)
    institution = db.Column(db.String(300), nullable=False)


class Testimonial(ContentRecord, db.Model):
    __tablename__ = 'testimonials'

    name = db.Column(db.String(200), nullable=False)
    role = db.Column(db.String(200), nullable=False, default='')
    company = db.Column(db.String(200), nullable=False, default='')
    content = db.Column(db.Text, nullable=False, default='')
    image = db.Column(db.String(500))
    image_object_path = db.Column(db.String(300))


class Faq(ContentRecord, db.Model):
    __tablename__ = 'faqs'

    q = db.Column(db.String(500), nullable=False)
    a = db.Column(db.Text, nullable=False)
    order = db.Column(db.Integer, nullable=False, default=0, index=True)


class About(ContentRecord, db.Model):
    __tablename__ = 'about'

    content = db.Column(db.Text, nullable=False, default='')
    vision = db.Column(db.Text, nullable=False, default='')
    image_path = db.Column(db.String(500))
    image_object_path = db.Column(db.String(300))
    projects_count = db.Column(db.String(20), nullable=False, default='0')
