"""
Seed the database for a demo tenant.

Creates:
  - The tenant's token pair (from the processor's authorization flow)
  - Payment methods mapped to sandbox funding sources

Run:
    python -m seed.seed_data --access-token AT --refresh-token RT
"""

import argparse
import asyncio

from transfer_gateway.database import async_session, init_db
from transfer_gateway.ledger.repository import TokenStore
from transfer_gateway.models.records import PaymentMethodRecord

DEMO_TENANT_ID = "00000000-0000-0000-0000-000000000001"

PAYMENT_METHODS = [
    {
        "kb_account_id": "9f1c1f2e-0000-4000-8000-000000000001",
        "kb_payment_method_id": "5a2d7c10-0000-4000-8000-000000000001",
        "funding_source_id": "80275e83-1f9d-4bf7-8816-2ddcd5ffc197",
        "customer_id": "c2d8e07a-0000-4000-8000-000000000001",
        "is_default": True,
    },
    {
        "kb_account_id": "9f1c1f2e-0000-4000-8000-000000000002",
        "kb_payment_method_id": "5a2d7c10-0000-4000-8000-000000000002",
        "funding_source_id": "b268f6b9-db3b-4ecc-83a2-8823a53ec8b7",
        "customer_id": "c2d8e07a-0000-4000-8000-000000000002",
        "is_default": True,
    },
]


async def seed(access_token: str, refresh_token: str):
    """Seed the database with the demo tenant."""
    await init_db()

    async with async_session() as session:
        await TokenStore(session).save(DEMO_TENANT_ID, access_token, refresh_token)

        existing = await session.get(PaymentMethodRecord, 1)
        if existing:
            print("Payment methods already seeded. Token pair updated.")
            await session.commit()
            return

        for pm_data in PAYMENT_METHODS:
            session.add(PaymentMethodRecord(tenant_id=DEMO_TENANT_ID, **pm_data))

        await session.commit()
        print(f"Seeded token pair and {len(PAYMENT_METHODS)} payment methods for tenant {DEMO_TENANT_ID}.")


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description=__doc__.splitlines()[1])
    parser.add_argument("--access-token", required=True)
    parser.add_argument("--refresh-token", required=True)
    args = parser.parse_args()
    asyncio.run(seed(args.access_token, args.refresh_token))
