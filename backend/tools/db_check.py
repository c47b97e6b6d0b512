import sqlite3
import sys

DB = sys.argv[1] if len(sys.argv) > 1 else "dev.db"
SHOP = sys.argv[2] if len(sys.argv) > 2 else None

conn = sqlite3.connect(DB)
cur = conn.cursor()

print("=== Recent Orders ===")
if SHOP:
    cur.execute(
        "SELECT id, shop_id, user_id, guest_order_token, status, total_amount, order_date FROM orders WHERE shop_id=? ORDER BY order_date DESC LIMIT 20",
        (SHOP,),
    )
else:
    cur.execute(
        "SELECT id, shop_id, user_id, guest_order_token, status, total_amount, order_date FROM orders ORDER BY order_date DESC LIMIT 20"
    )
orders = cur.fetchall()
for r in orders:
    print(
        {
            "id": r[0],
            "shop_id": r[1],
            "user_id": r[2],
            "guest_order_token": r[3],
            "status": r[4],
            "total_amount": r[5],
            "order_date": r[6],
        }
    )

print("\n=== Line Items ===")
for r in orders:
    cur.execute(
        "SELECT oi.item_id, i.name, oi.quantity, oi.price_at_order FROM order_item oi JOIN items i ON i.id = oi.item_id WHERE oi.order_id=?",
        (r[0],),
    )
    for line in cur.fetchall():
        print(r[0], line)

conn.close()
