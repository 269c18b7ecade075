"""
Tests for the SQLAlchemy repositories and unit of work.
"""

from dataclasses import replace
from datetime import timedelta
from decimal import Decimal
from unittest.mock import patch

import pytest
from sqlalchemy.exc import OperationalError

from agrostore.domain.entities import (
    CartItem,
    DeliveryOption,
    DemandRequest,
    Order,
    OrderItem,
    OrderStatus,
    ProductCategory,
    RequestResponse,
    SubscriptionPlan,
    utcnow,
)
from agrostore.domain.exceptions import EntityNotFoundException, PersistenceException


class TestUserRepository:
    def test_get_by_email_ignores_case(self, uow, farmer):
        found = uow.users.get_by_email("ION@GreenValley.md")
        assert found is not None
        assert found.id == farmer.id
        assert found.farm_name == "Green Valley Farm"

    def test_list_farmers(self, uow, farmer, consumer, second_farmer):
        assert {u.id for u in uow.users.list_farmers()} == {farmer.id, second_farmer.id}

    def test_update_missing_user(self, uow, farmer):
        with pytest.raises(EntityNotFoundException):
            uow.users.update(replace(farmer, id="missing"))


class TestSubscriptionRepository:
    def test_registration_creates_free_subscription(self, uow, farmer):
        active = uow.subscriptions.get_active(farmer.id)
        assert active.plan == SubscriptionPlan.FREE
        assert active.commission_rate == Decimal("5.0")

    def test_history_keeps_inactive_records(self, uow, farmer):
        current = uow.subscriptions.get_active(farmer.id)
        uow.subscriptions.update(replace(current, is_active=False))
        uow.commit()

        assert uow.subscriptions.get_active(farmer.id) is None
        history = uow.subscriptions.list_for_user(farmer.id)
        assert len(history) == 1
        assert history[0].is_active is False


class TestProductRepository:
    def test_round_trip_keeps_lists_and_enums(self, uow, farmer, make_product):
        product = make_product(farmer, tags=["fresh", "local"], image_urls=["a.jpg"])
        loaded = uow.products.get(product.id)
        assert loaded.delivery_options == [DeliveryOption.PICKUP, DeliveryOption.DELIVERY]
        assert loaded.tags == ["fresh", "local"]
        assert loaded.price == Decimal("25.00")

    def test_count_and_list_by_farmer(self, uow, farmer, second_farmer, make_product):
        make_product(farmer)
        make_product(farmer)
        make_product(second_farmer)
        assert uow.products.count_by_farmer(farmer.id) == 2
        assert len(uow.products.list_by_farmer(second_farmer.id)) == 1

    def test_list_all_in_insertion_order(self, uow, farmer, make_product):
        first = make_product(farmer)
        second = make_product(farmer)
        assert [p.id for p in uow.products.list_all()] == [first.id, second.id]

    def test_get_many(self, uow, farmer, make_product):
        a = make_product(farmer)
        make_product(farmer)
        assert [p.id for p in uow.products.get_many([a.id, "missing"])] == [a.id]
        assert uow.products.get_many([]) == []


class TestCartRepository:
    def _item(self, user_id, product):
        return CartItem(
            user_id=user_id,
            product_id=product.id,
            product_name=product.name,
            unit_price=product.price,
            quantity=Decimal("2"),
            unit=product.unit,
            delivery_option=DeliveryOption.PICKUP,
        )

    def test_delete_for_user(self, uow, farmer, consumer, make_product):
        product = make_product(farmer)
        uow.cart.add(self._item(consumer.id, product))
        uow.cart.add(self._item(consumer.id, make_product(farmer)))
        uow.commit()

        assert uow.cart.delete_for_user(consumer.id) == 2
        uow.commit()
        assert uow.cart.list_for_user(consumer.id) == []

    def test_delete_missing(self, uow):
        assert uow.cart.delete("nope") is False


class TestOrderRepository:
    def test_items_keep_their_order(self, uow, farmer, consumer):
        items = [
            OrderItem(product_id=f"p{i}", product_name=f"Item {i}", quantity=Decimal("1"), unit_price=Decimal(i))
            for i in range(1, 5)
        ]
        order = Order.from_items(consumer.id, farmer.id, items, DeliveryOption.SHIPPING)
        uow.orders.add(order)
        uow.commit()

        loaded = uow.orders.get(order.id)
        assert [i.product_id for i in loaded.items] == ["p1", "p2", "p3", "p4"]
        assert loaded.total_amount == Decimal("10")

    def test_amounts_survive_reload(self, uow, db_session, farmer, consumer):
        items = [
            OrderItem(product_id="p1", product_name="Cherries", quantity=Decimal("1.333"), unit_price=Decimal("1.99")),
            OrderItem(product_id="p2", product_name="Honey", quantity=Decimal("0.75"), unit_price=Decimal("12.49")),
        ]
        order = Order.from_items(consumer.id, farmer.id, items, DeliveryOption.PICKUP)
        uow.orders.add(order)
        uow.commit()

        db_session.expire_all()
        loaded = uow.orders.get(order.id)
        assert loaded.total_amount == order.total_amount == Decimal("12.02")
        assert [i.total_price for i in loaded.items] == [i.total_price for i in order.items]

    def test_list_for_customer_and_farmer(self, uow, farmer, consumer):
        order = Order.from_items(consumer.id, farmer.id, [], DeliveryOption.PICKUP)
        uow.orders.add(order)
        uow.commit()

        assert [o.id for o in uow.orders.list_for_customer(consumer.id)] == [order.id]
        assert [o.id for o in uow.orders.list_for_farmer(farmer.id)] == [order.id]

    def test_update_changes_status(self, uow, farmer, consumer):
        order = Order.from_items(consumer.id, farmer.id, [], DeliveryOption.PICKUP)
        uow.orders.add(order)
        uow.commit()

        uow.orders.update(replace(order, status=OrderStatus.CONFIRMED))
        uow.commit()
        assert uow.orders.get(order.id).status == OrderStatus.CONFIRMED


class TestDemandRepository:
    def test_responses_attach_to_demand(self, uow, restaurant, farmer):
        demand = DemandRequest(
            requester_id=restaurant.id,
            title="Potatoes",
            description="Weekly",
            category=ProductCategory.VEGETABLES,
            quantity=Decimal("100"),
            unit="kg",
            max_price=Decimal("6"),
            location="Chisinau",
            required_by=utcnow() + timedelta(days=7),
        )
        uow.demands.add(demand)
        uow.commit()

        response = RequestResponse(
            request_id=demand.id,
            farmer_id=farmer.id,
            farmer_name="Green Valley Farm",
            offered_price=Decimal("5.50"),
            available_quantity=Decimal("100"),
        )
        uow.demands.add_response(response)
        uow.commit()

        loaded = uow.demands.get(demand.id)
        assert [r.id for r in loaded.responses] == [response.id]

        uow.demands.update_response(replace(response, is_accepted=True))
        uow.commit()
        assert uow.demands.get(demand.id).responses[0].is_accepted is True


class TestUnitOfWork:
    def test_context_manager_rolls_back_on_error(self, uow, farmer):
        with pytest.raises(RuntimeError):
            with uow:
                uow.users.update(replace(farmer, name="Changed"))
                raise RuntimeError("boom")

        assert uow.users.get(farmer.id).name == "Ion Popescu"

    def test_commit_failure_raises_persistence_exception(self, uow, db_session):
        with patch.object(db_session, "commit", side_effect=OperationalError("COMMIT", {}, Exception("locked"))):
            with pytest.raises(PersistenceException):
                uow.commit()
