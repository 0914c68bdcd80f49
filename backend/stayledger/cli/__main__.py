# backend/stayledger/cli/__main__.py
from __future__ import annotations

import argparse

from stayledger.cli.seed_demo import seed_demo


def main() -> None:
    p = argparse.ArgumentParser(description="Seed a demo portfolio")
    p.add_argument("--portfolio-name", default="Demo Rentals")
    p.add_argument("--username", default="demo")
    p.add_argument("--user-email", default="demo@stayledger.local")
    p.add_argument("--password", default="demo-password")
    p.add_argument("--role", default="standard_admin", choices=["standard_user", "standard_admin", "administrator"])
    p.add_argument("--no-sample-data", action="store_true")
    args = p.parse_args()

    out = seed_demo(
        portfolio_name=args.portfolio_name,
        username=args.username,
        user_email=args.user_email,
        password=args.password,
        role=args.role,
        create_sample_data=(not args.no_sample_data),
    )
    print(
        {
            "ok": True,
            "portfolio_id": out.portfolio_id,
            "user_email": out.user_email,
            "owner_id": out.owner_id,
            "listing_id": out.listing_id,
            "inventory_ids": list(out.inventory_ids),
        }
    )


if __name__ == "__main__":
    main()
