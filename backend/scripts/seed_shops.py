#!/usr/bin/env python3
"""
Seed shops, their catalog items and admin accounts from a JSON file
(scripts/shops.json by default). Re-running is safe: shops are matched by
name, items by (shop, name) and admins by email.

Usage:
    python scripts/seed_shops.py --file scripts/shops.json [--reset]
"""
import argparse
import json
import logging
import os
import sys

# allow running from repo/scripts
sys.path.append(os.path.abspath(os.path.join(os.path.dirname(__file__), "..")))

from mobileorder.db import SessionLocal, init_db
from mobileorder.models.item import Item
from mobileorder.models.shop import Shop, shop_admins
from mobileorder.models.user import User, UserRole

log = logging.getLogger("seed")

DEFAULT_SOURCE = os.path.join(os.path.dirname(__file__), "shops.json")


def _get_or_create_shop(db, entry) -> Shop:
    shop = db.query(Shop).filter(Shop.name == entry["name"]).first()
    if not shop:
        shop = Shop(name=entry["name"])
        db.add(shop)
    shop.description = entry.get("description")
    shop.location = entry.get("location")
    shop.is_open = bool(entry.get("is_open", True))
    db.flush()
    return shop


def _seed_items(db, shop: Shop, entries) -> int:
    existing = {it.name: it for it in shop.items}
    count = 0
    for entry in entries:
        item = existing.get(entry["name"])
        if not item:
            item = Item(name=entry["name"])
            shop.items.append(item)
        item.description = entry.get("description")
        item.price = int(entry.get("price", 0))
        item.is_available = bool(entry.get("is_available", True))
        count += 1
    db.flush()
    return count


def _seed_admins(db, shop: Shop, emails) -> int:
    count = 0
    for email in emails:
        user = db.query(User).filter(User.email == email).first()
        if not user:
            user = User(email=email, role=UserRole.ADMIN)
            db.add(user)
            db.flush()
        elif user.role != UserRole.ADMIN:
            user.role = UserRole.ADMIN

        linked = (
            db.query(shop_admins)
            .filter(shop_admins.c.admin_user_id == user.id)
            .first()
        )
        if linked is None:
            db.execute(shop_admins.insert().values(shop_id=shop.id, admin_user_id=user.id))
            count += 1
        elif linked.shop_id != shop.id:
            log.warning("admin %s already staffs shop %s, skipping", email, linked.shop_id)
    db.flush()
    return count


def seed_from_file(path: str, reset: bool = False):
    with open(path, "r", encoding="utf-8") as f:
        data = json.load(f)

    shops = data.get("shops", []) if isinstance(data, dict) else data

    init_db(reset=reset)
    db = SessionLocal()
    try:
        for entry in shops:
            shop = _get_or_create_shop(db, entry)
            n_items = _seed_items(db, shop, entry.get("items", []))
            n_admins = _seed_admins(db, shop, entry.get("admins", []))
            log.info("shop %s (%s): %d items, %d new admins", shop.id, shop.name, n_items, n_admins)
        db.commit()
    except Exception:
        db.rollback()
        raise
    finally:
        db.close()


if __name__ == "__main__":
    logging.basicConfig(level=logging.INFO, format="%(levelname)s %(message)s")
    parser = argparse.ArgumentParser()
    parser.add_argument("--file", "-f", default=DEFAULT_SOURCE, help="Path to shops json")
    parser.add_argument("--reset", action="store_true", help="Drop and recreate all tables first")
    args = parser.parse_args()
    if not os.path.exists(args.file):
        print("File not found:", args.file)
        sys.exit(1)
    seed_from_file(args.file, reset=args.reset)
