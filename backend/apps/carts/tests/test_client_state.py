import asyncio
import unittest
from decimal import Decimal
from types import SimpleNamespace

from apps.carts.client import (
    BusinessError,
    ClientCartState,
    ItemStatus,
    NotFound,
    Ok,
    Queued,
    TokenRejected,
    Unauthorized,
    Unavailable,
)


def product(product_id=1, base="1000.00", name="Drill"):
    return SimpleNamespace(id=product_id, base_price=Decimal(base), name=name)


class FakeGateway:
    """In-memory cart server; failures and holds are scripted per method."""

    def __init__(self, price="800.00", stock=5):
        self.price = Decimal(price)
        self.stock = stock
        self.lines = {}
        self._pk = 100
        self.failures = {}
        self.gates = {}
        self.calls = []
        self.valid_tokens = None

    async def _enter(self, name, token=None, *args):
        self.calls.append((name, *args))
        gate = self.gates.get(name)
        if gate is not None:
            await gate.wait()
        if name != "get_cart" and self.valid_tokens is not None and token not in self.valid_tokens:
            return TokenRejected()
        queued = self.failures.get(name)
        if queued:
            return queued.pop(0)
        return None

    def _line(self, item_id):
        for line in self.lines.values():
            if line.id == item_id:
                return line
        return None

    async def get_cart(self):
        failure = await self._enter("get_cart")
        if failure is not None:
            return failure
        items = [SimpleNamespace(**vars(line)) for line in self.lines.values()]
        return Ok(SimpleNamespace(items=items))

    async def add_item(self, product_id, quantity, token):
        failure = await self._enter("add_item", token, product_id, quantity)
        if failure is not None:
            return failure
        line = self.lines.get(product_id)
        total = quantity + (line.quantity if line else 0)
        if total > self.stock:
            return BusinessError(reason="insufficient_stock")
        if line is None:
            line = SimpleNamespace(
                id=self._pk,
                product_id=product_id,
                quantity=0,
                unit_price=self.price,
                discount=Decimal("0"),
                product=None,
            )
            self._pk += 1
            self.lines[product_id] = line
        line.quantity = total
        return Ok(SimpleNamespace(**vars(line)))

    async def update_quantity(self, item_id, quantity, token):
        failure = await self._enter("update_quantity", token, item_id, quantity)
        if failure is not None:
            return failure
        line = self._line(item_id)
        if line is None:
            return NotFound()
        if quantity > self.stock:
            return BusinessError(reason="insufficient_stock")
        line.quantity = quantity
        return Ok(SimpleNamespace(**vars(line)))

    async def remove_item(self, item_id, token):
        failure = await self._enter("remove_item", token, item_id)
        if failure is not None:
            return failure
        line = self._line(item_id)
        if line is None:
            return NotFound()
        del self.lines[line.product_id]
        return Ok(SimpleNamespace(**vars(line)))

    async def clear(self, token):
        failure = await self._enter("clear", token)
        if failure is not None:
            return failure
        self.lines.clear()
        return Ok(None)


class FakeTokens:
    def __init__(self):
        self.token = "stale"
        self.refreshes = 0

    async def current(self):
        return self.token

    async def refresh(self):
        self.refreshes += 1
        self.token = f"fresh-{self.refreshes}"
        return self.token


class FakeSession:
    def __init__(self, authenticated=True):
        self.authenticated = authenticated

    def is_authenticated(self):
        return self.authenticated


async def settle():
    for _ in range(5):
        await asyncio.sleep(0)


class ClientCartStateTests(unittest.IsolatedAsyncioTestCase):
    def setUp(self):
        self.gateway = FakeGateway()
        self.tokens = FakeTokens()
        self.session = FakeSession()
        self.sleeps = []

        async def record_sleep(seconds):
            self.sleeps.append(seconds)

        self.store = ClientCartState(
            self.gateway, self.tokens, self.session, sleep=record_sleep
        )

    def names(self):
        return [call[0] for call in self.gateway.calls]

    def lines(self):
        return sorted((i.product_id, i.quantity, i.status) for i in self.store.items())

    async def test_add_confirms_with_server_price(self):
        result = await self.store.add_item(product(), 2)
        self.assertIsInstance(result, Ok)
        item = self.store.get(1)
        self.assertEqual(item.id, 100)
        self.assertFalse(item.is_temporary)
        self.assertEqual(item.unit_price, Decimal("800.00"))
        self.assertEqual(item.status, ItemStatus.CONFIRMED)
        self.assertEqual(self.store.total_price(), Decimal("1600.00"))

    async def test_add_is_applied_before_server_answers(self):
        self.gateway.gates["add_item"] = asyncio.Event()
        task = asyncio.create_task(self.store.add_item(product(), 1))
        await settle()
        item = self.store.get(1)
        self.assertTrue(item.is_temporary)
        self.assertEqual(item.status, ItemStatus.OPTIMISTIC)
        self.assertEqual(self.store.total_items(), 1)
        self.gateway.gates["add_item"].set()
        await task
        self.assertEqual(self.store.get(1).id, 100)

    async def test_failed_add_of_new_line_is_rolled_back(self):
        self.gateway.failures["add_item"] = [BusinessError(reason="insufficient_stock")]
        result = await self.store.add_item(product(), 1)
        self.assertIsInstance(result, BusinessError)
        self.assertEqual(self.store.items(), [])
        self.assertIs(self.store.last_error, result)

    async def test_failed_add_to_existing_line_subtracts_only_its_delta(self):
        await self.store.add_item(product(), 2)
        result = await self.store.add_item(product(), 4)
        self.assertIsInstance(result, BusinessError)
        item = self.store.get(1)
        self.assertEqual(item.quantity, 2)
        self.assertEqual(item.status, ItemStatus.CONFIRMED)

    async def test_ambiguous_unauthorized_keeps_optimistic_line(self):
        self.gateway.failures["add_item"] = [Unauthorized()]
        result = await self.store.add_item(product(), 1)
        self.assertIsInstance(result, Unauthorized)
        item = self.store.get(1)
        self.assertIsNotNone(item)
        self.assertEqual(item.status, ItemStatus.OPTIMISTIC)

    async def test_unauthorized_after_sign_out_rolls_back(self):
        self.gateway.failures["add_item"] = [Unauthorized()]
        self.session.authenticated = False
        await self.store.add_item(product(), 1)
        self.assertEqual(self.store.items(), [])

    async def test_rejected_token_is_refreshed_and_retried_once(self):
        self.gateway.valid_tokens = {"fresh-1"}
        result = await self.store.add_item(product(), 1)
        self.assertIsInstance(result, Ok)
        self.assertEqual(self.tokens.refreshes, 1)
        self.assertEqual(self.names(), ["add_item", "add_item"])

    async def test_second_token_rejection_is_surfaced(self):
        self.gateway.valid_tokens = {"never"}
        result = await self.store.add_item(product(), 1)
        self.assertIsInstance(result, TokenRejected)
        self.assertEqual(self.tokens.refreshes, 1)
        self.assertEqual(self.names(), ["add_item", "add_item"])
        self.assertEqual(self.store.items(), [])

    async def test_quantity_writes_are_coalesced(self):
        await self.store.add_item(product(), 1)
        item_id = self.store.get(1).id
        self.gateway.gates["update_quantity"] = asyncio.Event()
        first = asyncio.create_task(self.store.update_quantity(item_id, 2))
        await settle()
        self.assertIsInstance(await self.store.update_quantity(item_id, 3), Queued)
        self.assertIsInstance(await self.store.update_quantity(item_id, 4), Queued)
        self.assertEqual(self.store.get(1).quantity, 4)
        self.gateway.gates["update_quantity"].set()
        self.assertIsInstance(await first, Ok)
        sent = [call[2] for call in self.gateway.calls if call[0] == "update_quantity"]
        self.assertEqual(sent, [2, 4])
        self.assertEqual(self.store.get(1).quantity, 4)
        self.assertEqual(self.store.get(1).status, ItemStatus.CONFIRMED)

    async def test_failed_quantity_write_reverts_to_server_state(self):
        await self.store.add_item(product(), 2)
        result = await self.store.update_quantity(self.store.get(1).id, 9)
        self.assertIsInstance(result, BusinessError)
        self.assertEqual(self.store.get(1).quantity, 2)
        self.assertEqual(self.names()[-1], "get_cart")

    async def test_quantity_set_on_temporary_line_is_sent_after_confirmation(self):
        self.gateway.gates["add_item"] = asyncio.Event()
        task = asyncio.create_task(self.store.add_item(product(), 1))
        await settle()
        temp_id = self.store.get(1).id
        self.assertIsInstance(await self.store.update_quantity(temp_id, 3), Queued)
        self.gateway.gates["add_item"].set()
        await task
        self.assertEqual(self.gateway.lines[1].quantity, 3)
        self.assertEqual(self.store.get(1).quantity, 3)

    async def test_removing_line_while_add_in_flight_deletes_it_on_confirmation(self):
        self.gateway.gates["add_item"] = asyncio.Event()
        task = asyncio.create_task(self.store.add_item(product(), 1))
        await settle()
        result = await self.store.remove_item(self.store.get(1).id)
        self.assertEqual(result, Ok(None))
        self.assertEqual(self.names(), ["add_item"])
        self.gateway.gates["add_item"].set()
        await task
        self.assertEqual(self.store.items(), [])
        self.assertEqual(self.gateway.lines, {})
        self.assertEqual(self.names(), ["add_item", "remove_item"])

    async def test_refresh_during_add_keeps_removed_line_hidden(self):
        self.gateway.gates["add_item"] = asyncio.Event()
        task = asyncio.create_task(self.store.add_item(product(), 1))
        await settle()
        await self.store.remove_item(self.store.get(1).id)
        self.gateway.lines[1] = SimpleNamespace(
            id=55, product_id=1, quantity=1, unit_price=Decimal("800.00"),
            discount=Decimal("0"), product=None,
        )
        await self.store.refresh()
        self.assertIsNone(self.store.get(1))
        self.gateway.gates["add_item"].set()
        await task

    async def test_remove_waits_minimum_latency(self):
        await self.store.add_item(product(), 1)
        result = await self.store.remove_item(self.store.get(1).id)
        self.assertIsInstance(result, Ok)
        self.assertEqual(self.sleeps, [0.12])
        self.assertEqual(self.store.items(), [])

    async def test_remove_of_already_deleted_line_succeeds(self):
        await self.store.add_item(product(), 1)
        self.gateway.lines.clear()
        result = await self.store.remove_item(self.store.get(1).id)
        self.assertIsInstance(result, Ok)
        self.assertEqual(self.store.items(), [])

    async def test_failed_remove_restores_line(self):
        await self.store.add_item(product(), 2)
        self.gateway.failures["remove_item"] = [Unavailable()]
        result = await self.store.remove_item(self.store.get(1).id)
        self.assertIsInstance(result, Unavailable)
        self.assertEqual(self.store.get(1).quantity, 2)
        self.assertEqual(self.store.get(1).status, ItemStatus.CONFIRMED)

    async def test_clear_and_failed_clear(self):
        await self.store.add_item(product(1), 1)
        await self.store.add_item(product(2, base="50.00"), 2)
        self.gateway.failures["clear"] = [Unavailable()]
        self.assertIsInstance(await self.store.clear(), Unavailable)
        self.assertEqual(sorted(i.product_id for i in self.store.items()), [1, 2])
        self.assertIsInstance(await self.store.clear(), Ok)
        self.assertEqual(self.store.items(), [])
        self.assertEqual(self.gateway.lines, {})

    async def test_refresh_takes_server_values_for_confirmed_lines(self):
        await self.store.add_item(product(), 1)
        self.gateway.lines[1].quantity = 3
        self.gateway.lines[1].discount = Decimal("10")
        await self.store.refresh()
        item = self.store.get(1)
        self.assertEqual(item.quantity, 3)
        self.assertEqual(item.subtotal, Decimal("2160.00"))

    async def test_transient_refresh_failure_keeps_local_cart(self):
        self.gateway.stock = 10
        await self.store.add_item(product(1), 1)
        await self.store.add_item(product(2, base="50.00"), 2)
        await self.store.add_item(product(3, base="20.00"), 3)
        before = self.lines()
        self.assertEqual([line[2] for line in before], [ItemStatus.CONFIRMED] * 3)
        for failure in (Unavailable(), Unauthorized()):
            self.gateway.failures["get_cart"] = [failure]
            result = await self.store.refresh()
            self.assertIs(result, failure)
            self.assertEqual(self.lines(), before)
            self.assertEqual(self.store.total_items(), 6)

    async def test_refresh_after_sign_out_clears_local_cart(self):
        await self.store.add_item(product(), 1)
        self.session.authenticated = False
        result = await self.store.refresh()
        self.assertIsInstance(result, Unauthorized)
        self.assertEqual(self.store.items(), [])
        self.assertNotIn("get_cart", self.names())

    async def test_failed_quantity_write_reverts_when_reload_also_fails(self):
        await self.store.add_item(product(), 2)
        self.gateway.failures["update_quantity"] = [Unavailable()]
        self.gateway.failures["get_cart"] = [Unavailable()]
        result = await self.store.update_quantity(self.store.get(1).id, 4)
        self.assertIsInstance(result, Unavailable)
        item = self.store.get(1)
        self.assertEqual(item.quantity, 2)
        self.assertEqual(item.unit_price, Decimal("800.00"))
        self.assertEqual(item.status, ItemStatus.CONFIRMED)
        self.assertEqual(self.gateway.lines[1].quantity, 2)

    async def test_failed_clear_while_add_in_flight_keeps_the_line(self):
        await self.store.add_item(product(), 1)
        self.gateway.gates["add_item"] = asyncio.Event()
        task = asyncio.create_task(self.store.add_item(product(), 1))
        await settle()
        self.gateway.failures["clear"] = [Unavailable()]
        self.gateway.failures["get_cart"] = [Unavailable()]
        self.assertIsInstance(await self.store.clear(), Unavailable)
        self.assertEqual(self.store.get(1).quantity, 2)
        self.gateway.gates["add_item"].set()
        self.assertIsInstance(await task, Ok)
        self.assertNotIn("remove_item", self.names())
        self.assertEqual(self.gateway.lines[1].quantity, 2)
        self.assertEqual(self.lines(), [(1, 2, ItemStatus.CONFIRMED)])

    async def test_quantity_set_while_add_in_flight_wins(self):
        await self.store.add_item(product(), 1)
        item_id = self.store.get(1).id
        self.gateway.gates["add_item"] = asyncio.Event()
        task = asyncio.create_task(self.store.add_item(product(), 2))
        await settle()
        self.assertIsInstance(await self.store.update_quantity(item_id, 2), Queued)
        self.assertEqual(self.store.get(1).quantity, 2)
        self.gateway.gates["add_item"].set()
        await task
        self.assertEqual(self.gateway.lines[1].quantity, 2)
        self.assertEqual(self.lines(), [(1, 2, ItemStatus.CONFIRMED)])

    async def test_quantity_set_while_add_fails_is_still_sent(self):
        await self.store.add_item(product(), 1)
        item_id = self.store.get(1).id
        self.gateway.gates["add_item"] = asyncio.Event()
        self.gateway.failures["add_item"] = [BusinessError(reason="insufficient_stock")]
        task = asyncio.create_task(self.store.add_item(product(), 4))
        await settle()
        await self.store.update_quantity(item_id, 3)
        self.gateway.gates["add_item"].set()
        self.assertIsInstance(await task, BusinessError)
        self.assertEqual(self.gateway.lines[1].quantity, 3)
        self.assertEqual(self.lines(), [(1, 3, ItemStatus.CONFIRMED)])

    async def test_inactive_server_line_is_listed_but_not_totalled(self):
        await self.store.add_item(product(), 1)
        self.gateway.lines[1].product_active = False
        await self.store.refresh()
        self.assertFalse(self.store.get(1).product_active)
        self.assertEqual(self.store.total_items(), 0)
        self.assertEqual(self.store.total_price(), Decimal("0.00"))
