"""
Integration Tests - Schema Initializer and Verification Queries
"""
from decimal import Decimal

import pytest
from sqlalchemy import delete, func, insert, select
from sqlalchemy.exc import IntegrityError

from ecom_portfolio.analytics import verification
from ecom_portfolio.database.models import Order, OrderItem, OrderStatus, Product, User
from ecom_portfolio.ingestion.seed_db import initialize_database


async def count(db, model, *where) -> int:
    stmt = select(func.count()).select_from(model)
    if where:
        stmt = stmt.where(*where)
    return (await db.execute(stmt)).scalar_one()


class TestInitializeDatabase:
    """Tests for schema recreation and seeding"""

    async def test_inserted_counts(self, test_db):
        result = await initialize_database(test_db)

        assert (result.users, result.products, result.orders, result.order_items) == (5, 10, 8, 16)

    async def test_rerun_starts_from_empty_schema(self, seeded_db):
        """A second run recreates the tables instead of appending"""
        await initialize_database(seeded_db)

        assert await count(seeded_db, Order) == 8
        assert await count(seeded_db, OrderItem) == 16

    async def test_orders_default_to_pending(self, seeded_db):
        await seeded_db.execute(insert(Order).values(user_id=1, amount=Decimal("10.00")))
        await seeded_db.commit()

        status = (
            await seeded_db.execute(select(Order.status).order_by(Order.order_id.desc()).limit(1))
        ).scalar_one()
        assert status == OrderStatus.PENDING

    async def test_every_order_has_a_user(self, seeded_db):
        stmt = (
            select(func.count())
            .select_from(Order)
            .outerjoin(User, Order.user_id == User.user_id)
            .where(User.user_id.is_(None))
        )
        assert (await seeded_db.execute(stmt)).scalar_one() == 0


class TestConstraints:
    """Foreign-key actions and check constraints"""

    async def test_delete_user_with_orders_is_blocked(self, seeded_db):
        with pytest.raises(IntegrityError):
            await seeded_db.execute(delete(User).where(User.user_id == 1))
        await seeded_db.rollback()

        assert await count(seeded_db, User) == 5

    async def test_delete_order_cascades_to_items(self, seeded_db):
        await seeded_db.execute(delete(Order).where(Order.order_id == 4))
        await seeded_db.commit()

        assert await count(seeded_db, OrderItem, OrderItem.order_id == 4) == 0
        assert await count(seeded_db, OrderItem) == 12

    async def test_delete_referenced_product_is_blocked(self, seeded_db):
        with pytest.raises(IntegrityError):
            await seeded_db.execute(delete(Product).where(Product.product_id == 10))
        await seeded_db.rollback()

    async def test_unreferenced_product_can_be_deleted(self, seeded_db):
        await seeded_db.execute(insert(Product).values(name="Sticker", price=Decimal("1.50")))
        await seeded_db.commit()

        await seeded_db.execute(delete(Product).where(Product.product_id == 11))
        await seeded_db.commit()

        assert await count(seeded_db, Product) == 10

    async def test_non_positive_price_rejected(self, seeded_db):
        with pytest.raises(IntegrityError):
            await seeded_db.execute(insert(Product).values(name="Freebie", price=Decimal("0.00")))
        await seeded_db.rollback()

    async def test_non_positive_quantity_rejected(self, seeded_db):
        with pytest.raises(IntegrityError):
            await seeded_db.execute(
                insert(OrderItem).values(order_id=1, product_id=1, quantity=0, unit_price=Decimal("89.99"))
            )
        await seeded_db.rollback()

    async def test_duplicate_username_rejected(self, seeded_db):
        with pytest.raises(IntegrityError):
            await seeded_db.execute(
                insert(User).values(username="john_doe", email="someone.else@example.com")
            )
        await seeded_db.rollback()

    async def test_order_for_unknown_user_rejected(self, seeded_db):
        with pytest.raises(IntegrityError):
            await seeded_db.execute(insert(Order).values(user_id=99, amount=Decimal("5.00")))
        await seeded_db.rollback()


class TestVerification:
    """Tests for the post-seed verification queries"""

    async def test_table_counts(self, seeded_db):
        counts = {c.metric: c.count for c in await verification.table_counts(seeded_db)}

        assert counts == {
            "Total Users": 5,
            "Total Products": 10,
            "Total Orders": 8,
            "Total Order Items": 16,
            "Orders with Users": 5,
            "Order Items with Products": 10,
        }

    async def test_orders_with_users(self, seeded_db):
        rows = await verification.orders_with_users(seeded_db)

        assert len(rows) == 8
        assert rows[0].order_id == 8
        assert rows[0].username == "mike_wilson"
        assert rows[0].status == "processing"

    async def test_order_item_details(self, seeded_db):
        rows = await verification.order_item_details(seeded_db)

        assert len(rows) == 16
        assert rows[0].order_id == 8
        cables = next(r for r in rows if r.order_id == 1 and r.product_name == "Cable Management Kit")
        assert cables.quantity == 3
        assert cables.subtotal == pytest.approx(59.97)

    async def test_search_products(self, seeded_db):
        hits = await verification.search_products(seeded_db, "wireless")

        assert [h.product_id for h in hits] == [1, 5]

    async def test_search_wildcards_match_literally(self, seeded_db):
        """LIKE wildcards in the term are matched as plain characters"""
        assert await verification.search_products(seeded_db, "%") == []
        assert await verification.search_products(seeded_db, "_") == []

    async def test_search_literal_percent(self, seeded_db):
        await seeded_db.execute(
            insert(Product).values(
                name="Discount Voucher",
                price=Decimal("5.00"),
                description="Save 10% on wireless accessories",
            )
        )
        await seeded_db.commit()

        hits = await verification.search_products(seeded_db, "10%")

        assert [h.name for h in hits] == ["Discount Voucher"]

    async def test_search_products_no_match(self, seeded_db):
        assert await verification.search_products(seeded_db, "blender") == []

    async def test_sales_by_user(self, seeded_db):
        rows = await verification.sales_by_user(seeded_db)

        assert len(rows) == 5
        assert rows[0].username == "john_doe"
        assert rows[0].total_orders == 2
        assert rows[0].total_spent == pytest.approx(374.95)

    async def test_top_selling_products(self, seeded_db):
        rows = await verification.top_selling_products(seeded_db)

        assert rows[0].name == "Mechanical Keyboard"
        assert rows[0].total_revenue == pytest.approx(259.98)
        cables = next(r for r in rows if r.product_id == 10)
        assert cables.total_quantity_sold == 6

    async def test_order_amounts_are_not_line_totals(self, seeded_db):
        """Stored amounts are independent of the lines and may differ"""
        rows = {r.order_id: r for r in await verification.reconcile_order_totals(seeded_db)}

        assert len(rows) == 8
        assert rows[1].line_total == pytest.approx(184.95)
        assert rows[1].difference == pytest.approx(-29.97)
        assert not rows[1].is_consistent
        assert rows[5].is_consistent

    async def test_database_summary(self, seeded_db):
        summary = await verification.database_summary(seeded_db)

        assert summary.dialect == "sqlite"
        assert summary.server_version
        assert {"users", "products", "orders", "order_items"} <= set(summary.tables)
        assert summary.views == []
