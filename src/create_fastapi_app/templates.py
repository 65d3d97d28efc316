"""Template catalog for generated FastAPI projects.

Every file the scaffolder can produce is listed here as a ``TemplateEntry``.
Entries are either literal text or a pure function of the project name.
"""

from dataclasses import dataclass
from typing import Callable, Iterator, Union

Content = Union[str, Callable[[str], str]]


@dataclass(frozen=True)
class TemplateEntry:
    """A relative path inside the project and the text written there."""
    path: str
    content: Content

    def render(self, project_name: str) -> str:
        if callable(self.content):
            return self.content(project_name)
        return self.content


ENV_TEMPLATE = """DEBUG=True
HOST=0.0.0.0
PORT=8000"""

CONFIG_TEMPLATE = """from pydantic_settings import BaseSettings
from functools import lru_cache


class Settings(BaseSettings):
    debug: bool = True
    host: str = "0.0.0.0"
    port: int = 8000
    
    class Config:
        env_file = ".env"


@lru_cache()
def get_settings():
    return Settings()"""

MAIN_TEMPLATE = """from fastapi import FastAPI, HTTPException
from fastapi.middleware.cors import CORSMiddleware
from contextlib import asynccontextmanager
from app.config import get_settings

settings = get_settings()


@asynccontextmanager
async def lifespan(app: FastAPI):
    # Startup
    print(f"Starting up... Debug mode: {settings.debug}")
    yield
    # Shutdown
    print("Shutting down...")


app = FastAPI(
    title="FastAPI App",
    version="0.1.0",
    debug=settings.debug,
    lifespan=lifespan
)

# Configure CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"] if settings.debug else [],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.get("/")
async def root():
    return {"message": "Hello, FastAPI!", "docs": "/docs"}


@app.get("/health")
async def health_check():
    return {"status": "healthy"}


# Example endpoint with error handling
@app.get("/items/{item_id}")
async def get_item(item_id: int):
    if item_id < 1:
        raise HTTPException(status_code=400, detail="Item ID must be positive")
    
    # Example logic
    if item_id > 100:
        raise HTTPException(status_code=404, detail="Item not found")
    
    return {"item_id": item_id, "name": f"Item {item_id}"}"""

RUNNER_TEMPLATE = """import uvicorn

from app.config import get_settings


if __name__ == "__main__":
    settings = get_settings()
    uvicorn.run(
        "app.main:app",
        host=settings.host,
        port=settings.port,
        reload=settings.debug,
    )
"""

TEST_MAIN_TEMPLATE = """import pytest
from fastapi.testclient import TestClient
from app.main import app

client = TestClient(app)


def test_root():
    response = client.get("/")
    assert response.status_code == 200
    data = response.json()
    assert "message" in data
    assert data["docs"] == "/docs"


def test_health():
    response = client.get("/health")
    assert response.status_code == 200
    assert response.json() == {"status": "healthy"}


def test_get_item_valid():
    response = client.get("/items/5")
    assert response.status_code == 200
    assert response.json() == {"item_id": 5, "name": "Item 5"}


def test_get_item_not_found():
    response = client.get("/items/999")
    assert response.status_code == 404
    assert "not found" in response.json()["detail"].lower()


def test_get_item_invalid():
    response = client.get("/items/0")
    assert response.status_code == 400
    assert "positive" in response.json()["detail"].lower()"""

GITIGNORE_TEMPLATE = """__pycache__/
*.py[cod]
.Python
.venv/
venv/
.env
.pytest_cache/
.coverage
.mypy_cache/
.ruff_cache/
*.db
.DS_Store
.vscode/
.idea/"""

# Recipe lines must start with a tab.
MAKEFILE_TEMPLATE = """.PHONY: run test lint format typecheck clean

run:
\tuv run python run.py

test:
\tuv run pytest

lint:
\tuv run ruff check app tests

format:
\tuv run black app tests

typecheck:
\tuv run mypy app

clean:
\trm -rf .pytest_cache .mypy_cache .ruff_cache .coverage
\tfind . -type d -name __pycache__ -prune -exec rm -rf {} +
"""

MANIFEST_PATH = "pyproject.toml"

MANIFEST_CONFIG_BLOCK = """
[tool.black]
line-length = 88

[tool.ruff]
line-length = 88
select = ["E", "F", "I"]

[tool.mypy]
python_version = "3.9"
ignore_missing_imports = true
"""

ENV_PATH = ".env"
ENV_EXAMPLE_PATH = ".env.example"
README_PATH = "README.md"

PACKAGE_MARKERS = ("app/__init__.py", "tests/__init__.py")


def render_readme(project_name: str) -> str:
    """Return the README for ``project_name``."""
    return f"""# {project_name}

## Quick Start

```bash
# Run development server
uv run uvicorn app.main:app --reload

# Or with custom host/port
uv run uvicorn app.main:app --reload --host 0.0.0.0 --port 8000
```

Your API will be available at:
- http://localhost:8000 - API root
- http://localhost:8000/docs - Interactive API documentation
- http://localhost:8000/health - Health check endpoint

## Development Commands

```bash
# Run tests
uv run pytest

# Format code
uv run black app tests

# Lint code
uv run ruff check app tests

# Type checking
uv run mypy app
```

## Project Structure

```
{project_name}/
├── app/
│   ├── __init__.py
│   ├── config.py     # Settings and configuration
│   └── main.py       # FastAPI application
├── tests/
│   └── test_main.py  # Test suite
├── .env              # Environment variables
└── pyproject.toml    # Project configuration
```
"""


TEMPLATES: tuple[TemplateEntry, ...] = (
    TemplateEntry(ENV_PATH, ENV_TEMPLATE),
    TemplateEntry("app/config.py", CONFIG_TEMPLATE),
    TemplateEntry("app/main.py", MAIN_TEMPLATE),
    TemplateEntry("run.py", RUNNER_TEMPLATE),
    TemplateEntry("tests/test_main.py", TEST_MAIN_TEMPLATE),
    TemplateEntry(".gitignore", GITIGNORE_TEMPLATE),
    TemplateEntry("Makefile", MAKEFILE_TEMPLATE),
)


def validate_catalog(entries: tuple[TemplateEntry, ...]) -> None:
    """Raise ValueError if any entry path is duplicated, escapes the project root,
    or collides with the manifest (which is only ever appended to)."""
    seen: set[str] = set()
    for entry in entries:
        path = entry.path
        if not path or path.startswith("/") or "\\" in path:
            raise ValueError(f"Template path must be relative and slash separated: {path!r}")
        if any(segment in ("", ".", "..") for segment in path.split("/")):
            raise ValueError(f"Template path contains an invalid segment: {path!r}")
        if path == MANIFEST_PATH:
            raise ValueError(f"{MANIFEST_PATH} is appended to, not templated")
        if path in seen:
            raise ValueError(f"Duplicate template path: {path!r}")
        seen.add(path)


validate_catalog(TEMPLATES)

_BY_PATH = {entry.path: entry for entry in TEMPLATES}


def iter_templates() -> Iterator[TemplateEntry]:
    return iter(TEMPLATES)


def get_template(path: str) -> TemplateEntry:
    """Look up a catalog entry by relative path. Raises KeyError if unknown."""
    return _BY_PATH[path]
