"""Shared test fixtures."""

import json
from pathlib import Path
from typing import Any

import pytest
from coursenav.config import Config, ContentConfig, LiveReloadConfig, ServerConfig


def sample_index_data() -> dict[str, Any]:
    """Two courses; module and chapter ranks deliberately out of file order."""
    return {
        "courses": [
            {
                "id": "python",
                "title": "Python",
                "order": 1,
                "modules": [
                    {
                        "id": "functions",
                        "title": "Functions",
                        "order": 2,
                        "chapters": [
                            {
                                "id": "lambdas",
                                "title": "Lambdas",
                                "order": 2,
                                "content": "Anonymous functions.",
                                "metadata": {"category": "faq", "readTimeMinutes": "3"},
                                "updatedAt": "2025-03-01T09:00:00+00:00",
                            },
                            {
                                "id": "defs",
                                "title": "Defining Functions",
                                "order": 1,
                                "content": "def f(): ...",
                                "tags": ["syntax"],
                                "metadata": {"quickAccess": "2"},
                                "updatedAt": "2025-02-01T09:00:00+00:00",
                            },
                        ],
                    },
                    {
                        "id": "basics",
                        "title": "Basics",
                        "order": 1,
                        "chapters": [
                            {
                                "id": "intro",
                                "title": "Introduction",
                                "order": 1,
                                "content": "Welcome.",
                                "description": "Start here",
                                "metadata": {
                                    "category": "FAQ",
                                    "readTimeMinutes": "5",
                                    "quickAccess": "1",
                                },
                                "updatedAt": "2025-01-01T09:00:00+00:00",
                            },
                            {
                                "id": "variables",
                                "title": "Variables",
                                "order": 2,
                                "content": "x = 1",
                                "metadata": {"category": "Getting Started"},
                            },
                        ],
                    },
                ],
            },
            {
                "id": "rust",
                "title": "Rust",
                "order": 2,
                "modules": [
                    {
                        "id": "ownership",
                        "title": "Ownership",
                        "order": 1,
                        "chapters": [
                            {
                                "id": "borrowing",
                                "title": "Borrowing",
                                "order": 1,
                                "content": "&T and &mut T",
                                "metadata": {"category": "Meta", "readTimeMinutes": "2"},
                            },
                        ],
                    },
                    {"id": "empty-module", "title": "Coming Soon", "order": 2},
                ],
            },
        ],
    }


@pytest.fixture
def index_path(tmp_path: Path) -> Path:
    """Write the sample content index and return its path."""
    path = tmp_path / "content.json"
    path.write_text(json.dumps(sample_index_data()), encoding="utf-8")
    return path


@pytest.fixture
def test_config(index_path: Path) -> Config:
    """Create a test configuration pointing at the sample index.

    Live reload is disabled so tests do not start a file watcher.
    """
    return Config(
        server=ServerConfig(),
        content=ContentConfig(index=index_path),
        live_reload=LiveReloadConfig(enabled=False),
    )


@pytest.fixture
def sample_index() -> dict[str, Any]:
    """Return the sample content index document."""
    return sample_index_data()
