import pytest

from conftest import REGION
from inventory_probe.adapters import (
    ALL_OPERATIONS,
    AdapterFactory,
    AdapterRegistry,
    ClientAPIAdapter,
    PageCursor,
    ResourceAPIAdapter,
    get_registry,
)
from inventory_probe.core.cancellation import CancellationToken
from inventory_probe.core.config import ProbeConfig
from inventory_probe.core.credentials import SessionCredentialProvider
from inventory_probe.core.errors import Conflict, NotFound, OperationCancelled
from inventory_probe.core.fetcher import fetch_all
from inventory_probe.core.models import InstanceState, ResourceKind
from inventory_probe.core.reconciler import reconcile


@pytest.fixture
def tagged_vpc(ec2_client):
    vpc = ec2_client.create_vpc(CidrBlock="10.20.0.0/16")["Vpc"]
    ec2_client.create_tags(Resources=[vpc["VpcId"]], Tags=[{"Key": "Name", "Value": "probe-vpc"}])
    subnet = ec2_client.create_subnet(VpcId=vpc["VpcId"], CidrBlock="10.20.1.0/24",
                                      AvailabilityZone=f"{REGION}a")["Subnet"]
    return vpc["VpcId"], subnet["SubnetId"]


@pytest.fixture
def running_instance(ec2_client):
    reservation = ec2_client.run_instances(ImageId="ami-12345678", MinCount=1, MaxCount=1,
                                           InstanceType="t2.micro")
    return reservation["Instances"][0]["InstanceId"]


@pytest.mark.parametrize("adapter_fixture", ["client_adapter", "resource_adapter"])
def test_adapter_lists_vpcs_and_subnets(request, adapter_fixture, tagged_vpc):
    adapter = request.getfixturevalue(adapter_fixture)
    vpc_id, subnet_id = tagged_vpc

    networks = fetch_all(adapter, ResourceKind.NETWORK)
    subnets = fetch_all(adapter, ResourceKind.SUBNET)

    network = networks.get(vpc_id)
    assert network is not None
    assert network.cidr_block == "10.20.0.0/16"
    assert network.is_default is False
    assert [(t.key, t.value) for t in network.tags] == [("Name", "probe-vpc")]

    subnet = subnets.get(subnet_id)
    assert subnet.network_id == vpc_id
    assert subnet.cidr_block == "10.20.1.0/24"
    assert subnet.availability_zone == f"{REGION}a"


@pytest.mark.parametrize("adapter_fixture", ["client_adapter", "resource_adapter"])
def test_adapter_lists_instances(request, adapter_fixture, running_instance):
    adapter = request.getfixturevalue(adapter_fixture)

    snapshot = fetch_all(adapter, ResourceKind.COMPUTE_INSTANCE)

    instance = snapshot.get(running_instance)
    assert instance is not None
    assert instance.state is InstanceState.RUNNING
    assert instance.instance_type == "t2.micro"


def test_both_adapters_see_the_same_network_inventory(client_adapter, resource_adapter,
                                                      tagged_vpc, running_instance):
    for kind in (ResourceKind.COMPUTE_INSTANCE, ResourceKind.NETWORK, ResourceKind.SUBNET):
        results = reconcile(fetch_all(client_adapter, kind), fetch_all(resource_adapter, kind))

        assert results
        assert all(r.is_consistent for r in results), kind


def test_bucket_created_by_client_is_managed_by_resource(client_adapter, resource_adapter):
    client_adapter.create_bucket("alpha-bucket")

    assert client_adapter.head_bucket("alpha-bucket") is True
    assert resource_adapter.head_bucket("alpha-bucket") is True
    assert resource_adapter.get_bucket_location("alpha-bucket") == REGION

    stored = resource_adapter.put_object("alpha-bucket", "hello.txt", b"hello")
    assert stored.size == 5

    objects = fetch_all(client_adapter, ResourceKind.STORED_OBJECT, bucket_name="alpha-bucket")
    assert objects.ids() == ["alpha-bucket/hello.txt"]
    assert objects.items[0].size == 5

    results = reconcile(fetch_all(client_adapter, ResourceKind.STORAGE_BUCKET),
                        fetch_all(resource_adapter, ResourceKind.STORAGE_BUCKET))
    assert [(r.resource_id, r.is_consistent) for r in results] == [("alpha-bucket", True)]

    resource_adapter.delete_object("alpha-bucket", "hello.txt")
    resource_adapter.delete_bucket("alpha-bucket")
    assert client_adapter.head_bucket("alpha-bucket") is False


def test_head_missing_bucket_returns_false(client_adapter, resource_adapter):
    assert client_adapter.head_bucket("does-not-exist") is False
    assert resource_adapter.head_bucket("does-not-exist") is False


def test_deleting_non_empty_bucket_is_a_conflict(client_adapter, resource_adapter):
    client_adapter.create_bucket("full-bucket")
    client_adapter.put_object("full-bucket", "k", b"data")

    with pytest.raises(Conflict) as excinfo:
        resource_adapter.delete_bucket("full-bucket")

    assert excinfo.value.code == "BucketNotEmpty"
    assert excinfo.value.adapter == "resource"
    assert excinfo.value.operation == "delete_bucket"


@pytest.mark.parametrize("adapter_fixture", ["client_adapter", "resource_adapter"])
def test_missing_bucket_operations_raise_not_found(request, adapter_fixture):
    adapter = request.getfixturevalue(adapter_fixture)

    with pytest.raises(NotFound):
        adapter.delete_bucket("no-such-bucket")
    with pytest.raises(NotFound):
        fetch_all(adapter, ResourceKind.STORED_OBJECT, bucket_name="no-such-bucket")


@pytest.mark.parametrize("adapter_class", [ClientAPIAdapter, ResourceAPIAdapter])
def test_object_listing_walks_every_page(mocked_aws, credentials, s3_client, adapter_class):
    s3_client.create_bucket(Bucket="paged-bucket")
    keys = [f"key-{n:02d}" for n in range(12)]
    for key in keys:
        s3_client.put_object(Bucket="paged-bucket", Key=key, Body=b"x")

    adapter = adapter_class(ProbeConfig(region=REGION, page_size=5), credentials)
    snapshot = fetch_all(adapter, ResourceKind.STORED_OBJECT, bucket_name="paged-bucket")

    assert [item.key for item in snapshot.items] == keys
    assert snapshot.page_count == 3
    assert adapter.stats["pages_fetched"] == 3


def test_resource_adapter_rejects_foreign_cursor(resource_adapter):
    with pytest.raises(ValueError):
        resource_adapter.list_networks(token="opaque-token-from-elsewhere")
    with pytest.raises(ValueError):
        resource_adapter.list_networks(token=PageCursor([[]], owner="client"))


def test_page_cursor_reports_successor_only_when_one_exists():
    cursor = PageCursor([[1, 2], [3], []], owner="resource")

    assert cursor.take() == ([1, 2], True)
    assert cursor.take() == ([3], True)
    assert cursor.take() == ([], False)
    with pytest.raises(ValueError):
        cursor.take()


def test_cancelled_token_stops_before_remote_call(client_adapter):
    token = CancellationToken()
    token.cancel("user abort")

    with pytest.raises(OperationCancelled):
        client_adapter.list_networks(cancel_token=token)

    assert client_adapter.stats["api_calls_made"] == 0
    assert client_adapter.stats["cancelled"] == 1


def test_create_bucket_outside_primary_region_sets_location(mocked_aws):
    config = ProbeConfig(region="eu-west-2")
    credentials = SessionCredentialProvider("eu-west-2").resolve()
    adapter = ClientAPIAdapter(config, credentials)

    assert adapter.create_bucket_kwargs("b") == {
        "Bucket": "b",
        "CreateBucketConfiguration": {"LocationConstraint": "eu-west-2"},
    }
    adapter.create_bucket("eu-bucket")
    assert adapter.get_bucket_location("eu-bucket") == "eu-west-2"


def test_registry_knows_both_adapters():
    registry = get_registry()

    assert {"client", "resource"} <= set(registry.list_registered_adapters())
    described = registry.describe_adapters()
    assert described["client"]["api_version"] == "boto3-client"
    assert described["resource"]["operations"] == sorted(ALL_OPERATIONS)
    with pytest.raises(KeyError):
        registry.get_adapter_class("grpc")


def test_registry_requires_adapter_name():
    class Nameless:
        adapter_name = ""

    with pytest.raises(ValueError):
        AdapterRegistry().register_adapter(Nameless)


def test_factory_builds_pair_in_configured_order(probe_config, credentials):
    probe_config.adapters = ["resource", "client"]

    adapter_a, adapter_b = AdapterFactory(probe_config, credentials).create_pair()

    assert isinstance(adapter_a, ResourceAPIAdapter)
    assert isinstance(adapter_b, ClientAPIAdapter)
