"""Flask app for one-click / web unsubscribe, deployed on Vercel."""

from __future__ import annotations

import logging
import os
import sys

# Add src/ to path so we can import optout.* modules
sys.path.insert(0, os.path.join(os.path.dirname(__file__), "..", "src"))

from optout.app import create_app
from optout.config import Settings
from optout.db import SuppressionStore, create_client_from_settings

settings = Settings.from_env()  # loads .env for local development

logging.basicConfig(
    level=settings.log_level,
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)

# One client per warm function instance; Vercel tears the process down for us.
store = SuppressionStore(create_client_from_settings(settings))
app = create_app(settings, store)
