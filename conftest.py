def pytest_configure(config) -> None:  # type: ignore
    # Add "slow" marker
    config.addinivalue_line("markers", "slow:Run tests that take a long time")
