import json

import httpx
import pytest
import respx
from tz_sdk.crypto import extract_keys
from tz_sdk.errors import NodeUnreachableError, OperationError, RpcError, TzSdkError
from tz_sdk.node import TezosNode
from tz_sdk.utils.base58 import PREFIX, b58check_encode

NODE = "http://node.test:8732"
HEAD = f"{NODE}/chains/main/blocks/head"
KEYS = extract_keys(b58check_encode(bytes(range(32)), PREFIX["edsk2"]))
APPLIED = [{"contents": [{"kind": "transaction", "metadata": {"operation_result": {"status": "applied"}}}]}]


def _node() -> TezosNode:
    node = TezosNode(max_retries=1)
    node.set_provider(NODE + "/")
    return node


def _mock_chain(router, *, manager_key=KEYS.pk, counter="41", header=True):
    if header:
        router.get(f"{HEAD}/header").respond(json={"hash": "BLhead", "protocol": "PtProto"})
    router.get(f"{HEAD}/context/contracts/{KEYS.pkh}/counter").respond(json=counter)
    router.get(f"{HEAD}/context/contracts/{KEYS.pkh}/manager_key").respond(json=manager_key)
    return router.post(f"{HEAD}/helpers/forge/operations").respond(json="deadbeef")


@pytest.mark.asyncio
async def test_forge_operation_fills_counter_and_source():
    ops = [
        {"kind": "transaction", "fee": "10", "gas_limit": "200", "storage_limit": "0", "amount": "1", "destination": "tz1a"},
        {"kind": "transaction", "fee": "10", "gas_limit": "200", "storage_limit": "0", "amount": "2", "destination": "tz1b"},
    ]
    with respx.mock(assert_all_called=False) as router:
        forge = _mock_chain(router)
        forged = await _node().forge_operation(KEYS.pkh, ops, KEYS)

    assert forged.opbytes == "deadbeef"
    body = json.loads(forge.calls.last.request.content)
    assert body["branch"] == "BLhead"
    assert [c["counter"] for c in body["contents"]] == ["42", "43"]
    assert {c["source"] for c in body["contents"]} == {KEYS.pkh}
    assert forged.op_ob["protocol"] == "PtProto"
    # caller's descriptors are left untouched
    assert "counter" not in ops[0]


@pytest.mark.asyncio
async def test_forge_operation_prepends_reveal_for_unrevealed_account():
    ops = [{"kind": "transaction", "fee": "10", "gas_limit": "200", "storage_limit": "0", "amount": "1", "destination": "tz1a"}]
    with respx.mock(assert_all_called=False) as router:
        forge = _mock_chain(router, manager_key=None)
        forged = await _node().forge_operation(KEYS.pkh, ops, KEYS)

    kinds = [c["kind"] for c in forged.op_ob["contents"]]
    assert kinds == ["reveal", "transaction"]
    assert forged.op_ob["contents"][0]["public_key"] == KEYS.pk
    assert json.loads(forge.calls.last.request.content)["contents"][1]["counter"] == "43"


@pytest.mark.asyncio
async def test_transfer_signs_preapplies_and_injects():
    with respx.mock(assert_all_called=False) as router:
        _mock_chain(router)
        preapply = router.post(f"{HEAD}/helpers/preapply/operations").respond(json=APPLIED)
        injection = router.post(f"{NODE}/injection/operation").respond(json="opHash123")
        op_hash = await _node().transfer(KEYS.pkh, KEYS, "tz1dest", "1000", "1420")

    assert op_hash == "opHash123"
    sent = json.loads(preapply.calls.last.request.content)[0]
    assert sent["protocol"] == "PtProto"
    assert sent["signature"].startswith("edsig")
    assert sent["contents"][0]["destination"] == "tz1dest"
    sbytes = json.loads(injection.calls.last.request.content)
    assert sbytes.startswith("deadbeef") and len(sbytes) == len("deadbeef") + 128


@pytest.mark.asyncio
async def test_inject_derives_signature_from_signed_bytes():
    sig = "ab" * 64
    op_ob = {"branch": "BLhead", "contents": [], "protocol": "PtProto"}
    with respx.mock() as router:
        preapply = router.post(f"{HEAD}/helpers/preapply/operations").respond(json=APPLIED)
        router.post(f"{NODE}/injection/operation").respond(json="opInjected")
        op_hash = await _node().inject(op_ob, "00" + sig)

    assert op_hash == "opInjected"
    sent = json.loads(preapply.calls.last.request.content)[0]
    assert sent["signature"] == b58check_encode(bytes.fromhex(sig), PREFIX["edsig"])


@pytest.mark.asyncio
async def test_inject_raises_on_failed_preapply():
    failed = [
        {
            "contents": [
                {
                    "kind": "transaction",
                    "metadata": {
                        "operation_result": {
                            "status": "failed",
                            "errors": [{"kind": "temporary", "id": "proto.balance_too_low"}],
                        }
                    },
                }
            ]
        }
    ]
    with respx.mock(assert_all_called=False) as router:
        router.post(f"{HEAD}/helpers/preapply/operations").respond(json=failed)
        injection = router.post(f"{NODE}/injection/operation").respond(json="never")
        with pytest.raises(OperationError) as exc:
            await _node().inject({"branch": "B", "contents": [], "protocol": "P", "signature": "edsigX"}, "00")

    assert "proto.balance_too_low" in str(exc.value)
    assert not injection.called


@pytest.mark.asyncio
async def test_rpc_error_on_client_error_status():
    with respx.mock() as router:
        router.get(f"{HEAD}/header").respond(400, json=[{"id": "bad"}])
        with pytest.raises(RpcError) as exc:
            await _node().forge_operation(KEYS.pkh, [])

    assert exc.value.status == 400
    assert exc.value.data == [{"id": "bad"}]


@pytest.mark.asyncio
async def test_transport_errors_are_retried_then_reported(monkeypatch):
    async def no_sleep(_delay):
        return None

    monkeypatch.setattr("tz_sdk.rpc.http.asyncio.sleep", no_sleep)
    with respx.mock() as router:
        route = router.get(f"{HEAD}/header").mock(side_effect=httpx.ConnectError("refused"))
        with pytest.raises(NodeUnreachableError) as exc:
            await _node().forge_operation(KEYS.pkh, [])

    assert route.call_count == 2
    assert exc.value.attempts == 2


@pytest.mark.asyncio
async def test_retry_recovers_from_unavailable(monkeypatch):
    async def no_sleep(_delay):
        return None

    monkeypatch.setattr("tz_sdk.rpc.http.asyncio.sleep", no_sleep)
    with respx.mock(assert_all_called=False) as router:
        _mock_chain(router, header=False)
        router.get(f"{HEAD}/header").mock(
            side_effect=[
                httpx.Response(503),
                httpx.Response(200, json={"hash": "BLhead", "protocol": "PtProto"}),
            ]
        )
        forged = await _node().forge_operation(KEYS.pkh, [])

    assert forged.op_ob["branch"] == "BLhead"


@pytest.mark.asyncio
async def test_missing_provider():
    with pytest.raises(TzSdkError):
        await TezosNode().forge_operation(KEYS.pkh, [])
