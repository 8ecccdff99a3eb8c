"""
Test Suite

Structure:
    tests/
    ├── conftest.py         # Pytest fixtures (in-memory repositories, engine, services)
    ├── factories.py        # Definition builders
    ├── unit/
    │   ├── test_engine/    # Engine, guards, behaviors, validator
    │   ├── test_services/  # Service layer tests
    │   └── test_utils/     # Utility tests
    └── integration/
        └── test_api/       # API endpoint tests

To run tests:
    pytest tests/
    pytest tests/unit/
    pytest tests/integration/
"""
