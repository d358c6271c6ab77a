"""Root pytest configuration; keeps the repository root importable for studyquiz.tests."""
