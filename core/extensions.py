# core/extensions.py
"""Flask extension instances, bound to the app in ``create_app``."""

from flask_cors import CORS
from flask_limiter import Limiter
from flask_limiter.util import get_remote_address
from flask_sqlalchemy import SQLAlchemy

db = SQLAlchemy()

limiter = Limiter(key_func=get_remote_address)

cors = CORS()
