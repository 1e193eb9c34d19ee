"""
Pytest configuration and fixtures.
"""
import os
import sys
import tempfile

# Add the parent directory to path so we can import the calculator package
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

# Keep the service's rotating JSON log out of the working tree during tests
os.environ.setdefault("LOG_FILE", os.path.join(tempfile.gettempdir(), "calculator-tests.log"))
