# tests/conftest.py
import os

# Keep tests on the local estimator unless a test configures a provider itself
os.environ.pop("GOOGLE_MAPS_API_KEY", None)
