"""Sample README documents shared across the test-suite."""

from __future__ import annotations

import textwrap


def readme(text: str) -> str:
    """Dedent a triple-quoted README and drop the leading newline."""
    return textwrap.dedent(text).lstrip("\n")


RUST_README = readme(
    """
    # ripfast

    A fast search tool written in Rust.

    ## Building

    ```rust
    cargo build --release
    cargo test
    ```
    """
)

POLYGLOT_README = readme(
    """
    # Dashboard

    The frontend lives in `web/` and is configured through package.json.
    The API is a Python service whose dependencies are pinned in requirements.txt.

    ## Setup

    ```bash
    npm install
    pip install -r requirements.txt
    ```
    """
)

JEST_README = readme(
    """
    # widget-kit

    Reusable UI widgets.

    ## Testing

    We use Jest for unit tests. Configure it in jest.config.js and keep
    shared setup in jest.config.js as well.

    ```bash
    npm test
    ```
    """
)

FULL_README = readme(
    """
    # Acme API

    > A small REST service for managing acme orders.

    Built with Express and TypeScript.

    ## Installation

    ```bash
    npm install
    npm install --save-dev jest
    ```

    ## Configuration

    Set the following environment variables:

    ```env
    DATABASE_URL=
    PORT=3000
    ```

    ## Usage

    ```bash
    npm run build
    npm start
    ```

    ## Testing

    Run `npm test` to execute the Jest suite.

    ## Project Structure

    ```text
    acme-api/
    ├── src/
    │   └── index.ts
    └── package.json
    ```
    """
)

MALFORMED_README = readme(
    """
    # Broken

    | a | b |
    |---|---|
    | 1 | 2 | 3 |

    ```python
    import os

    <!-- never closed
    trailing text
    """
)


__all__ = [
    "FULL_README",
    "JEST_README",
    "MALFORMED_README",
    "POLYGLOT_README",
    "RUST_README",
    "readme",
]
