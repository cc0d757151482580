import logging
from typing import Dict, List, Optional

from storage.keyed_store import (
    FAVORITES_KEY,
    RESOURCES_KEY,
    SERVICE_MAPPINGS_KEY,
    KeyedStore,
    get_store,
)
from storage.models import ResourceSchedule, ResourceType, generate_id, index_of, parse_records

logger = logging.getLogger(__name__)

_ID_ALPHABET = 'abcdefghijklmnopqrstuvwxyz0123456789'

# Used when a service has no (resolvable) admin mapping; matched by exact service name
DEFAULT_RESOURCES: Dict[str, List[ResourceSchedule]] = {
    "Open a new account": [
        ResourceSchedule("default-accounts", "Account Services Department", ResourceType.DEPARTMENT,
                         "Sun-Thu 09:00 AM - 03:00 PM"),
        ResourceSchedule("default-customer-service", "Customer Service Desk", ResourceType.DEPARTMENT,
                         "Sun-Thu 09:00 AM - 04:00 PM"),
    ],
    "Update KYC information": [
        ResourceSchedule("default-compliance", "Compliance Department", ResourceType.DEPARTMENT,
                         "Sun-Thu 09:00 AM - 02:00 PM"),
    ],
    "Request account statement": [
        ResourceSchedule("default-accounts", "Account Services Department", ResourceType.DEPARTMENT,
                         "Sun-Thu 09:00 AM - 03:00 PM"),
    ],
    "Financing consultation": [
        ResourceSchedule("default-financing", "Financing Department", ResourceType.DEPARTMENT,
                         "Sun-Thu 10:00 AM - 02:00 PM"),
        ResourceSchedule("default-financing-advisor", "Senior Financing Advisor", ResourceType.PERSON,
                         "Mon, Wed 10:00 AM - 01:00 PM"),
    ],
    "Submit financing application": [
        ResourceSchedule("default-financing", "Financing Department", ResourceType.DEPARTMENT,
                         "Sun-Thu 10:00 AM - 02:00 PM"),
    ],
    "Submit LC request": [
        ResourceSchedule("default-trade-finance", "Trade Finance Department", ResourceType.DEPARTMENT,
                         "Sun-Thu 09:00 AM - 01:00 PM"),
    ],
    "Corporate account opening": [
        ResourceSchedule("default-corporate", "Corporate Banking Department", ResourceType.DEPARTMENT,
                         "Sun-Thu 09:00 AM - 03:00 PM"),
        ResourceSchedule("default-relationship-manager", "Corporate Relationship Manager", ResourceType.PERSON,
                         "Sun, Tue, Thu 11:00 AM - 02:00 PM"),
    ],
}


class ResourceNotFound(LookupError):
    def __init__(self, resource_id):
        self.resource_id = resource_id
        super().__init__(f"Resource {resource_id} not found")


class ResourceAssignment:
    """Departments/people (``appointmentResources``) and the
    service -> resource ids mapping (``serviceResourceMappings``).

    Mapping arrays keep insertion order and never hold duplicates.
    """

    def __init__(self, store: Optional[KeyedStore] = None,
                 defaults: Optional[Dict[str, List[ResourceSchedule]]] = None):
        self.store = store or get_store()
        self.defaults = DEFAULT_RESOURCES if defaults is None else defaults

    # --- resource table ---------------------------------------------------

    def list_resources(self) -> List[ResourceSchedule]:
        return parse_records(self.store.load(RESOURCES_KEY), ResourceSchedule, logger)

    def get_resource(self, resource_id: str) -> ResourceSchedule:
        for resource in self.list_resources():
            if resource.id == resource_id:
                return resource
        raise ResourceNotFound(resource_id)

    def add_resource(self, name: str, type, schedule: str = "") -> ResourceSchedule:
        if not name or not name.strip():
            raise ValueError("A resource name is required")

        with self.store.transaction():
            records = self.store.load(RESOURCES_KEY)
            existing = {r.get('id') for r in records if isinstance(r, dict)}
            resource_id = generate_id('res-', 9, _ID_ALPHABET)
            while resource_id in existing:
                resource_id = generate_id('res-', 9, _ID_ALPHABET)

            resource = ResourceSchedule(resource_id, name.strip(), ResourceType(type), schedule.strip())
            records.append(resource.to_dict())
            self.store.save(RESOURCES_KEY, records)

        logger.info(f"Added {resource.type.value} resource {resource.name} ({resource.id})")
        return resource

    def update_resource(self, resource_id: str, name: Optional[str] = None,
                        type=None, schedule: Optional[str] = None) -> ResourceSchedule:
        with self.store.transaction():
            records = self.store.load(RESOURCES_KEY)
            index = index_of(records, resource_id)
            if index is None:
                raise ResourceNotFound(resource_id)

            resource = ResourceSchedule.from_dict(records[index])
            if name is not None:
                if not name.strip():
                    raise ValueError("A resource name is required")
                resource.name = name.strip()
            if type is not None:
                resource.type = ResourceType(type)
            if schedule is not None:
                resource.schedule = schedule.strip()
            records[index] = resource.to_dict()
            self.store.save(RESOURCES_KEY, records)
        return resource

    def delete_resource(self, resource_id: str) -> bool:
        """Remove a resource and every mapping reference to it together"""
        with self.store.transaction():
            records = self.store.load(RESOURCES_KEY)
            remaining = [r for r in records if not (isinstance(r, dict) and r.get('id') == resource_id)]
            removed = len(remaining) != len(records)

            mapping = self.store.load(SERVICE_MAPPINGS_KEY, dict)
            cleaned = {
                service: [rid for rid in ids if rid != resource_id]
                for service, ids in mapping.items()
                if isinstance(ids, list)
            }

            self.store.save(RESOURCES_KEY, remaining)
            self.store.save(SERVICE_MAPPINGS_KEY, cleaned)

        if removed:
            logger.info(f"Deleted resource {resource_id}")
        return removed

    # --- service mapping --------------------------------------------------

    def mapping(self) -> Dict[str, List[str]]:
        return {
            service: list(ids)
            for service, ids in self.store.load(SERVICE_MAPPINGS_KEY, dict).items()
            if isinstance(ids, list)
        }

    def assign(self, service: str, resource_id: str) -> List[str]:
        """Append ``resource_id`` to the service's list unless already there"""
        if not service:
            raise ValueError("A service name is required")

        with self.store.transaction():
            self.get_resource(resource_id)
            mapping = self.mapping()
            ids = mapping.setdefault(service, [])
            if resource_id not in ids:
                ids.append(resource_id)
                self.store.save(SERVICE_MAPPINGS_KEY, mapping)
        return ids

    def unassign(self, service: str, resource_id: str) -> List[str]:
        with self.store.transaction():
            mapping = self.mapping()
            ids = [rid for rid in mapping.get(service, []) if rid != resource_id]
            if service in mapping:
                mapping[service] = ids
                self.store.save(SERVICE_MAPPINGS_KEY, mapping)
        return ids

    def resources_for(self, service: str) -> List[ResourceSchedule]:
        """Mapped resources in mapping order, else the built-in defaults"""
        by_id = {r.id: r for r in self.list_resources()}
        resolved = [by_id[rid] for rid in self.mapping().get(service, []) if rid in by_id]
        if resolved:
            return resolved
        return list(self.defaults.get(service, []))


class FavoriteStore:
    """Starred departments/people, kept per store rather than per user"""

    def __init__(self, store: Optional[KeyedStore] = None):
        self.store = store or get_store()

    def list(self) -> List[ResourceSchedule]:
        return parse_records(self.store.load(FAVORITES_KEY), ResourceSchedule, logger)

    def is_favorite(self, resource_id: str) -> bool:
        return any(f.id == resource_id for f in self.list())

    def add(self, resource: ResourceSchedule) -> bool:
        with self.store.transaction():
            records = self.store.load(FAVORITES_KEY)
            if index_of(records, resource.id) is not None:
                return False
            records.append(resource.to_dict())
            self.store.save(FAVORITES_KEY, records)
        return True

    def remove(self, resource_id: str) -> bool:
        with self.store.transaction():
            records = self.store.load(FAVORITES_KEY)
            remaining = [r for r in records if not (isinstance(r, dict) and r.get('id') == resource_id)]
            if len(remaining) == len(records):
                return False
            self.store.save(FAVORITES_KEY, remaining)
        return True

    def toggle(self, resource: ResourceSchedule) -> bool:
        """Star or unstar; returns True when the resource is now a favorite"""
        if self.remove(resource.id):
            return False
        self.add(resource)
        return True
