"""Test configuration: environment must be set before eventlane is imported."""

import os

os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ.setdefault("AUTOMATION_API_SECRET", "test-automation-secret")
os.environ.setdefault("SITE_BASE_URL", "https://eventlane.test")
os.environ["MESSAGING_API_URL"] = ""
