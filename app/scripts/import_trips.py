"""
CSV import driver.

Reads a trips CSV and replays every row against POST /trips, then prints the
entity statistics from GET /result. Re-running the import is safe: trip
creation is idempotent, so rows already stored are returned, not duplicated.

Usage:
    python -m scripts.import_trips [path/to/input.csv]
"""
import sys
import asyncio
import logging
from pathlib import Path
from typing import Dict, List, Optional

import httpx
import pandas as pd

from core.environment import get_api_base_url
from core.logging import setup_logging
from core.retry import async_retry, NonRetryableError, RetryableError

logger = logging.getLogger(__name__)

DEFAULT_CSV_PATH = Path("data") / "input.csv"


def load_rows(csv_path: Path) -> List[Dict[str, Optional[str]]]:
    """Reads the CSV as text and drops fully blank rows; the API does the typing."""
    df = pd.read_csv(csv_path, dtype=str, skip_blank_lines=True)
    df = df.dropna(how="all")
    df = df.astype(object).where(df.notna(), None)
    return df.to_dict(orient="records")


@async_retry(max_attempts=3, base_delay=0.5, max_delay=5.0)
async def post_row(client: httpx.AsyncClient, row: Dict[str, Optional[str]]) -> dict:
    response = await client.post("/trips", json=row)
    if response.status_code >= 500:
        raise RetryableError(f"HTTP {response.status_code}: {response.text}")
    if response.status_code >= 400:
        raise NonRetryableError(f"HTTP {response.status_code}: {response.text}")
    return response.json()


async def run_importer(
    csv_path: Path = DEFAULT_CSV_PATH,
    client: Optional[httpx.AsyncClient] = None,
) -> Dict[str, object]:
    """
    Imports every row of `csv_path` through the API.

    Pass `client` to reuse an existing httpx client (tests mount the ASGI app
    directly); otherwise one is opened against API_BASE_URL.

    Returns:
        dict: {"ok": int, "fail": int, "stats": dict}
    """
    if client is None:
        async with httpx.AsyncClient(base_url=get_api_base_url(), timeout=30.0) as own_client:
            return await run_importer(csv_path, own_client)

    logger.info("Starting import of CSV file!")
    rows = load_rows(Path(csv_path))

    ok, fail = 0, 0
    for index, row in enumerate(rows, start=1):
        try:
            await post_row(client, row)
            ok += 1
        except (RetryableError, NonRetryableError, httpx.HTTPError) as e:
            fail += 1
            logger.error(f"Row {index} failed: {e}")

    logger.info(f"Import summary: ok={ok}, fail={fail}")

    response = await client.get("/result")
    response.raise_for_status()
    stats = response.json()
    logger.info(f"Imported entities: {stats}")

    return {"ok": ok, "fail": fail, "stats": stats}


async def main():
    setup_logging()
    csv_path = Path(sys.argv[1]) if len(sys.argv) > 1 else DEFAULT_CSV_PATH
    await run_importer(csv_path)


if __name__ == "__main__":
    asyncio.run(main())
