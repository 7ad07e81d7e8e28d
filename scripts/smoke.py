# scripts/smoke.py
"""
Smoke Test Script for the procintake auto-save flow.

Runs one end-to-end editing session against a live backend: submit a form,
edit it through an EditSession, let the debounce fire, and read the record
back to confirm the draft reached the server.

Usage
-----
1. Start the development backend:
    $ uv run procintake serve

2. In another shell:
    $ uv run python scripts/smoke.py
    $ uv run python scripts/smoke.py --delay 0.5 --keep
"""

import argparse
import asyncio
import logging
import sys
from pathlib import Path

from dotenv import load_dotenv

from procintake.api.client import FormsApiClient, obfuscate_url
from procintake.autosave.state import AutoSaveConfig
from procintake.contracts.form import ProcessForm
from procintake.core.errors import ApiError
from procintake.host.session import EditSession

# --------------------------------------------------------------------------- #
# Environment Setup
# --------------------------------------------------------------------------- #
env_path = Path(".env")
if env_path.exists():
    load_dotenv(env_path)
    print("✅ Loaded .env file")
else:
    print("⚠️  No .env file found, using default backend URL.")

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    handlers=[logging.StreamHandler(sys.stdout)],
)

# --------------------------------------------------------------------------- #
# Test Data
# --------------------------------------------------------------------------- #
SAMPLE_FORM = ProcessForm(
    requester_name="Smoke Test",
    department="QA",
    request_date="2025-01-10",
    process_name="Smoke test process",
    general_description="Created by scripts/smoke.py",
    process_objective="Verify auto-save",
    main_steps="create, edit, wait, read back",
    tools=["procintake"],
    process_owner="QA",
    main_participants="QA",
    beneficiaries="Everyone",
    business_rules="none",
    required_functionality="auto-save",
    interface_type="cli",
    survey_reasons=["testing"],
    expected_results="the edit is persisted",
)


async def run(client: FormsApiClient, delay: float) -> str:
    """Create a record, edit it with auto-save, and verify the server copy."""
    record = await asyncio.to_thread(client.create_form, SAMPLE_FORM)
    print(f"\n📝 Created form {record.id}")

    session = EditSession(
        record.form,
        form_id=record.id,
        save=client.draft_saver(record.id),
        config=AutoSaveConfig(delay=delay),
        on_error=lambda message: print(f"❌ Save failed: {message}"),
    )
    session.subscribe(lambda state: print(f"   ↳ {session.status().text}"))

    # Rapid edits collapse into a single save.
    for step in range(3):
        session.set_field("main_steps", f"create, edit x{step + 1}, wait, read back")
    session.add_problem("Manual checks", "slow releases")

    await asyncio.sleep(delay * 3)
    await session.aclose()

    stored = await asyncio.to_thread(client.get_form, record.id)
    if stored.form.main_steps != session.form.main_steps:
        raise RuntimeError(f"server copy is stale: {stored.form.main_steps!r}")
    print(f"✅ Server copy matches: {stored.form.main_steps!r}")
    return record.id


def main() -> None:
    """Execute the smoke test workflow."""
    parser = argparse.ArgumentParser(description="Run procintake Smoke Test")
    parser.add_argument("--delay", type=float, default=0.5, help="Auto-save delay in seconds")
    parser.add_argument("--keep", action="store_true", help="Do not delete the test record")
    args = parser.parse_args()

    client = FormsApiClient.from_settings()
    print(f"\n🔌 Backend: {obfuscate_url(client.base_url)}")
    if not client.test_connection():
        print("❌ Backend is not reachable. Start it with `procintake serve`.")
        sys.exit(1)

    try:
        form_id = asyncio.run(run(client, args.delay))
    except (ApiError, RuntimeError) as exc:
        print(f"\n❌ Smoke test failed: {exc}")
        sys.exit(1)

    if not args.keep:
        client.delete_form(form_id)
        print(f"🧹 Deleted form {form_id}")

    print("\n" + "=" * 60)
    print("✅ Smoke test finished successfully!")
    print("=" * 60)


if __name__ == "__main__":
    main()
