import requests

from conftest import OWNER, FakeContract
from nftprobe.models import NO_SINGLE_OWNER, MetadataDocument
from nftprobe.resolver import ERRORED, NOT_FOUND, RESOLVED, attempt, resolve
from nftprobe.rpc import RpcError
from nftprobe.supply import DEFAULT_FALLBACK_SUPPLY, discover_supply


def _doc(uri):
    return MetadataDocument.from_json({"name": uri})


def test_attempt_captures_value_and_error():
    assert attempt(lambda x: x * 2, 4).value == 8
    failed = attempt(int, "nope")
    assert not failed.ok
    assert isinstance(failed.error, ValueError)


def test_primary_path_yields_owner_and_normalized_uri():
    client = FakeContract(token_uris={0: "ipfs://abc/0"}, owners={0: OWNER})
    fetched = []

    def fetch(uri):
        fetched.append(uri)
        return _doc(uri)

    resolution = resolve(client, 0, fetch)

    assert resolution.status == RESOLVED
    record = resolution.record
    assert record.token_id == 0
    assert record.owner == OWNER
    assert record.token_uri == "https://ipfs.io/ipfs/abc/0"
    assert record.metadata.name == "https://ipfs.io/ipfs/abc/0"
    assert fetched == ["https://ipfs.io/ipfs/abc/0"]


def test_fallback_path_uses_sentinel_owner():
    client = FakeContract(uris={5: "https://x/5.json"})

    record = resolve(client, 5, _doc).record

    assert record.owner == NO_SINGLE_OWNER
    assert record.token_uri == "https://x/5.json"


def test_primary_pair_fails_atomically():
    # tokenURI answers but ownerOf reverts, so the ERC-1155 path wins.
    client = FakeContract(token_uris={3: "https://primary/3"}, uris={3: "https://fallback/3"})

    record = resolve(client, 3, _doc).record

    assert record.owner == NO_SINGLE_OWNER
    assert record.token_uri == "https://fallback/3"


def test_both_paths_failing_is_not_found():
    client = FakeContract()

    resolution = resolve(client, 9, _doc)

    assert resolution.record is None
    assert resolution.status == NOT_FOUND


def test_transport_failure_is_reported_as_error():
    client = FakeContract(broken={4: RpcError("connection reset")})

    resolution = resolve(client, 4, _doc)

    assert resolution.record is None
    assert resolution.status == ERRORED


def test_missing_metadata_keeps_record():
    client = FakeContract(token_uris={1: "https://x/1"}, owners={1: OWNER})

    record = resolve(client, 1, lambda uri: None).record

    assert record is not None
    assert record.metadata is None
    assert record.owner == OWNER
    assert record.token_uri == "https://x/1"


def test_unexpected_fetch_failure_drops_token():
    client = FakeContract(token_uris={1: "https://x/1"}, owners={1: OWNER})

    def explode(uri):
        raise requests.ConnectionError("boom")

    resolution = resolve(client, 1, explode)

    assert resolution.record is None
    assert resolution.status == ERRORED


def test_id_template_expanded_only_when_enabled():
    client = FakeContract(uris={26: "ipfs://meta/{id}.json"})

    plain = resolve(client, 26, _doc).record
    expanded = resolve(client, 26, _doc, expand_template=True).record

    assert plain.token_uri == "https://ipfs.io/ipfs/meta/{id}.json"
    assert expanded.token_uri == "https://ipfs.io/ipfs/meta/" + format(26, "064x") + ".json"


def test_custom_gateway():
    client = FakeContract(token_uris={0: "ipfs://abc/0"}, owners={0: OWNER})

    record = resolve(client, 0, _doc, gateway="https://gw.example/ipfs/").record

    assert record.token_uri == "https://gw.example/ipfs/abc/0"


def test_discover_supply_uses_total_supply():
    bound = discover_supply(FakeContract(supply=42))
    assert bound.value == 42
    assert not bound.is_fallback


def test_discover_supply_clamps_negative_values():
    assert discover_supply(FakeContract(supply=-5)).value == 0


def test_discover_supply_falls_back_on_failure():
    bound = discover_supply(FakeContract(supply=None))
    assert bound.value == DEFAULT_FALLBACK_SUPPLY == 100
    assert bound.is_fallback


def test_discover_supply_falls_back_on_transport_error():
    bound = discover_supply(FakeContract(supply=RpcError("timeout")), fallback=7)
    assert bound.value == 7
    assert bound.is_fallback
