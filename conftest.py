"""Project-wide pytest configuration."""


def pytest_configure(config):
    """Register the markers used by run_tests.py."""
    config.addinivalue_line("markers", "unit: fast tests without network access")
    config.addinivalue_line(
        "markers", "integration: marks tests as integration tests (need a live server)"
    )
