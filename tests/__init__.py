"""Test package for support-relay."""
import os

# pick up MONGODB_CONNECTION and friends from a local .env, if there is one
from dotenv import load_dotenv

_env_file = os.path.join(os.path.dirname(os.path.dirname(os.path.abspath(__file__))), ".env")
if os.path.exists(_env_file):
    load_dotenv(_env_file)
