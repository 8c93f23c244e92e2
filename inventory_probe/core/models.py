"""
Version-agnostic resource model for provider inventory probing.

The normalize_* functions map the wire shape returned by the EC2 and S3 APIs
into immutable model instances. Absent optional fields are filled with
documented defaults here, once, instead of at every use site.
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, Iterable, List, Mapping, Optional, Tuple, Union

PRIMARY_REGION = "us-east-1"

# Legacy S3 location constraints that do not match a region name
LEGACY_LOCATION_CONSTRAINTS = {
    'EU': 'eu-west-1',
}


class ResourceKind(str, Enum):
    """Resource kinds that can be listed and reconciled"""
    COMPUTE_INSTANCE = "compute_instance"
    NETWORK = "network"
    SUBNET = "subnet"
    STORAGE_BUCKET = "storage_bucket"
    STORED_OBJECT = "stored_object"


class InstanceState(str, Enum):
    PENDING = "pending"
    RUNNING = "running"
    STOPPING = "stopping"
    STOPPED = "stopped"
    TERMINATED = "terminated"
    UNKNOWN = "unknown"

    @classmethod
    def parse(cls, name: Optional[str]) -> "InstanceState":
        """Parse an EC2 state name, mapping anything unrecognized to UNKNOWN"""
        if not name:
            return cls.UNKNOWN
        name = str(name).lower()
        if name == "shutting-down":
            return cls.STOPPING
        try:
            return cls(name)
        except ValueError:
            return cls.UNKNOWN


@dataclass(frozen=True)
class Tag:
    key: str
    value: str


@dataclass(frozen=True)
class ComputeInstance:
    id: str
    state: InstanceState = InstanceState.UNKNOWN
    instance_type: str = ""
    tags: Tuple[Tag, ...] = ()

    @property
    def resource_id(self) -> str:
        return self.id


@dataclass(frozen=True)
class Network:
    id: str
    cidr_block: str = ""
    is_default: bool = False
    tags: Tuple[Tag, ...] = ()

    @property
    def resource_id(self) -> str:
        return self.id


@dataclass(frozen=True)
class Subnet:
    id: str
    network_id: str = ""
    cidr_block: str = ""
    availability_zone: str = ""
    tags: Tuple[Tag, ...] = ()

    @property
    def resource_id(self) -> str:
        return self.id


@dataclass(frozen=True)
class StorageBucket:
    name: str
    creation_timestamp: Optional[datetime] = None
    region: str = PRIMARY_REGION

    @property
    def resource_id(self) -> str:
        return self.name


@dataclass(frozen=True)
class StoredObject:
    bucket_name: str
    key: str
    content: Optional[bytes] = None
    size: int = 0

    @property
    def resource_id(self) -> str:
        return f"{self.bucket_name}/{self.key}"


Resource = Union[ComputeInstance, Network, Subnet, StorageBucket, StoredObject]

RESOURCE_TYPES = {
    ResourceKind.COMPUTE_INSTANCE: ComputeInstance,
    ResourceKind.NETWORK: Network,
    ResourceKind.SUBNET: Subnet,
    ResourceKind.STORAGE_BUCKET: StorageBucket,
    ResourceKind.STORED_OBJECT: StoredObject,
}


@dataclass(frozen=True)
class InventorySnapshot:
    """Complete, immutable listing of one resource kind taken by one fetch"""
    kind: ResourceKind
    items: Tuple[Resource, ...]
    fetched_at: datetime
    adapter: str = ""
    truncated_count: int = 0
    page_count: int = 0

    def __len__(self) -> int:
        return len(self.items)

    def ids(self) -> List[str]:
        return [item.resource_id for item in self.items]

    def get(self, resource_id: str) -> Optional[Resource]:
        """Return the last item with the given id, matching reconciliation"""
        for item in reversed(self.items):
            if item.resource_id == resource_id:
                return item
        return None

    def sample(self, limit: int) -> Tuple[Resource, ...]:
        return self.items[:max(limit, 0)]


@dataclass(frozen=True)
class ReconciliationResult:
    resource_id: str
    found_in_a: bool
    found_in_b: bool
    field_mismatches: Dict[str, Tuple[Any, Any]] = field(default_factory=dict)

    @property
    def is_consistent(self) -> bool:
        """True when the resource is visible on both sides with equal fields"""
        return self.found_in_a and self.found_in_b and not self.field_mismatches

    def to_dict(self) -> Dict[str, Any]:
        return {
            'resource_id': self.resource_id,
            'found_in_a': self.found_in_a,
            'found_in_b': self.found_in_b,
            'field_mismatches': {
                name: [str(value_a), str(value_b)]
                for name, (value_a, value_b) in self.field_mismatches.items()
            },
        }


def text(value: Any) -> str:
    """Return a string field value, with None mapped to the empty string"""
    if value is None:
        return ""
    if isinstance(value, Enum):
        return str(value.value)
    return str(value)


def parse_tags(raw_tags: Optional[Iterable[Mapping[str, Any]]]) -> Tuple[Tag, ...]:
    """Convert an AWS tag list ([{'Key': ..., 'Value': ...}]) preserving order"""
    if not raw_tags:
        return ()
    return tuple(Tag(key=text(t.get('Key')), value=text(t.get('Value'))) for t in raw_tags)


def tag_value(resource: Any, key: str) -> Optional[str]:
    """Return the value of the first tag with the given key, or None"""
    for tag in getattr(resource, 'tags', ()) or ():
        if tag.key == key:
            return tag.value
    return None


def normalize_region(location: Optional[str], default_region: str = PRIMARY_REGION) -> str:
    """An empty location constraint means the primary region"""
    if not location:
        return default_region
    location = text(location)
    return LEGACY_LOCATION_CONSTRAINTS.get(location, location)


def normalize_timestamp(value: Any) -> Optional[datetime]:
    """Return an aware UTC datetime, or None for absent/unparseable input"""
    if value is None or value == "":
        return None
    if isinstance(value, str):
        try:
            value = datetime.fromisoformat(value.replace('Z', '+00:00'))
        except ValueError:
            return None
    if not isinstance(value, datetime):
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def normalize_instance(raw: Mapping[str, Any]) -> ComputeInstance:
    state = raw.get('State') or {}
    return ComputeInstance(
        id=text(raw.get('InstanceId')),
        state=InstanceState.parse(state.get('Name')),
        instance_type=text(raw.get('InstanceType')),
        tags=parse_tags(raw.get('Tags')),
    )


def normalize_network(raw: Mapping[str, Any]) -> Network:
    return Network(
        id=text(raw.get('VpcId')),
        cidr_block=text(raw.get('CidrBlock')),
        is_default=bool(raw.get('IsDefault', False)),
        tags=parse_tags(raw.get('Tags')),
    )


def normalize_subnet(raw: Mapping[str, Any]) -> Subnet:
    return Subnet(
        id=text(raw.get('SubnetId')),
        network_id=text(raw.get('VpcId')),
        cidr_block=text(raw.get('CidrBlock')),
        availability_zone=text(raw.get('AvailabilityZone')),
        tags=parse_tags(raw.get('Tags')),
    )


def normalize_bucket(raw: Mapping[str, Any], default_region: str = PRIMARY_REGION) -> StorageBucket:
    location = raw.get('BucketRegion') or raw.get('LocationConstraint')
    return StorageBucket(
        name=text(raw.get('Name')),
        creation_timestamp=normalize_timestamp(raw.get('CreationDate')),
        region=normalize_region(location, default_region),
    )


def normalize_object(raw: Mapping[str, Any], bucket_name: str) -> StoredObject:
    body = raw.get('Body')
    content = body if isinstance(body, (bytes, type(None))) else None
    return StoredObject(
        bucket_name=bucket_name,
        key=text(raw.get('Key')),
        content=content,
        size=int(raw.get('Size') or 0),
    )
