"""
Audit Trail Module

Hash-chained immutable audit log with SHA-256 for tamper detection.
Every loan status transition and every recorded payment is logged here.
"""

import hashlib
import json
import threading
import uuid
from datetime import date, datetime, timezone
from dataclasses import dataclass
from typing import Dict, List, Optional, Any, Tuple
from enum import Enum
from decimal import Decimal

from .storage import StorageInterface, StorageRecord


class AuditEventType(Enum):
    """Types of audit events"""
    # Loan lifecycle events
    LOAN_REQUESTED = "loan_requested"
    LOAN_APPROVED = "loan_approved"
    LOAN_REJECTED = "loan_rejected"
    LOAN_PAID_OFF = "loan_paid_off"
    
    # Payment events
    LOAN_PAYMENT_MADE = "loan_payment_made"
    PENALTY_COLLECTED = "penalty_collected"
    
    # Derived figure maintenance
    INTEREST_ACCRUED = "interest_accrued"
    PRINCIPAL_DRIFT_DETECTED = "principal_drift_detected"
    
    # Treasury events
    CONTRIBUTION_RECORDED = "contribution_recorded"
    CONTRIBUTION_APPROVED = "contribution_approved"
    CONTRIBUTION_REJECTED = "contribution_rejected"


def _convert_value(value):
    if isinstance(value, Decimal):
        return str(value)
    elif isinstance(value, (datetime, date)):
        return value.isoformat()
    elif isinstance(value, Enum):
        return value.value
    elif isinstance(value, dict):
        return {k: _convert_value(v) for k, v in value.items()}
    elif isinstance(value, list):
        return [_convert_value(v) for v in value]
    return value


@dataclass
class AuditEvent(StorageRecord):
    """
    Immutable audit event with hash chaining for tamper detection
    """
    event_type: AuditEventType
    entity_type: str    # loan, payment, contribution
    entity_id: str
    previous_hash: str  # Hash of previous audit event for chaining
    current_hash: str   # SHA-256 hash of this event
    metadata: Dict[str, Any]
    user_id: Optional[str] = None
    
    def __post_init__(self):
        # Metadata must be JSON serializable for hashing and storage
        self.metadata = {k: _convert_value(v) for k, v in (self.metadata or {}).items()}
    
    def calculate_hash(self) -> str:
        """
        Calculate SHA-256 hash of this event
        Hash includes all fields except current_hash to prevent circular reference
        """
        hash_data = {
            'id': self.id,
            'created_at': self.created_at.isoformat(),
            'event_type': self.event_type.value,
            'entity_type': self.entity_type,
            'entity_id': self.entity_id,
            'previous_hash': self.previous_hash,
            'user_id': self.user_id,
            'metadata': self.metadata
        }
        
        json_data = json.dumps(hash_data, sort_keys=True, separators=(',', ':'))
        return hashlib.sha256(json_data.encode('utf-8')).hexdigest()
    
    def verify_hash(self) -> bool:
        """Verify that the current hash is correct"""
        return self.current_hash == self.calculate_hash()
    
    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'AuditEvent':
        """Create AuditEvent from dictionary with proper enum deserialization"""
        data = dict(data)
        data['created_at'] = datetime.fromisoformat(data['created_at'])
        data['updated_at'] = datetime.fromisoformat(data['updated_at'])
        data['event_type'] = AuditEventType(data['event_type'])
        return cls(**data)


class AuditTrail:
    """
    Hash-chained audit trail for tamper detection
    """
    
    def __init__(self, storage: StorageInterface, table_name: str = "audit_events"):
        self.storage = storage
        self.table_name = table_name
        self._lock = threading.Lock()
    
    def _ordered_events(self) -> List[AuditEvent]:
        events = [AuditEvent.from_dict(data) for data in self.storage.load_all(self.table_name)]
        events.sort(key=lambda e: (e.created_at, e.metadata.get('_sequence', 0)))
        return events
    
    def _chain_head(self) -> Tuple[str, int]:
        """Hash and sequence number of the newest stored event"""
        events = self._ordered_events()
        if not events:
            return "", 0
        return events[-1].current_hash, events[-1].metadata.get('_sequence', 0)
    
    def log_event(
        self,
        event_type: AuditEventType,
        entity_type: str,
        entity_id: str,
        metadata: Optional[Dict[str, Any]] = None,
        user_id: Optional[str] = None
    ) -> AuditEvent:
        """
        Log an audit event with hash chaining
        
        Args:
            event_type: Type of audit event
            entity_type: Type of entity being audited
            entity_id: ID of the entity
            metadata: Additional event-specific data
            user_id: ID of user who initiated the action
            
        Returns:
            Created AuditEvent
        """
        # Storage transaction before the chain lock, matching callers inside atomic()
        with self.storage.atomic(), self._lock:
            # Rolled-back events are gone from storage and drop out of the chain
            previous_hash, sequence = self._chain_head()
            now = datetime.now(timezone.utc)
            
            event_metadata = dict(metadata or {})
            # Orders events sharing a timestamp
            event_metadata['_sequence'] = sequence + 1
            
            event = AuditEvent(
                id=str(uuid.uuid4()),
                created_at=now,
                updated_at=now,
                event_type=event_type,
                entity_type=entity_type,
                entity_id=entity_id,
                previous_hash=previous_hash,
                current_hash="",
                user_id=user_id,
                metadata=event_metadata
            )
            event.current_hash = event.calculate_hash()
            
            self.storage.save(self.table_name, event.id, event.to_dict())
            
            return event
    
    def get_events_for_entity(
        self,
        entity_type: str,
        entity_id: str,
        limit: Optional[int] = None
    ) -> List[AuditEvent]:
        """Get all audit events for a specific entity, oldest first"""
        events = [
            e for e in self._ordered_events()
            if e.entity_type == entity_type and e.entity_id == entity_id
        ]
        if limit:
            events = events[-limit:]
        return events
    
    def get_events_by_type(self, event_type: AuditEventType) -> List[AuditEvent]:
        """Get audit events of one type, oldest first"""
        return [e for e in self._ordered_events() if e.event_type == event_type]
    
    def verify_integrity(self) -> Dict[str, Any]:
        """
        Verify the integrity of the entire audit chain
        
        Returns:
            Dictionary with integrity check results
        """
        result = {
            'valid': True,
            'total_events': 0,
            'hash_errors': [],
            'chain_breaks': []
        }
        
        events = self._ordered_events()
        result['total_events'] = len(events)
        
        previous_hash = ""
        for i, event in enumerate(events):
            if not event.verify_hash():
                result['valid'] = False
                result['hash_errors'].append({
                    'event_id': event.id,
                    'position': i,
                    'expected_hash': event.calculate_hash(),
                    'actual_hash': event.current_hash
                })
            if event.previous_hash != previous_hash:
                result['valid'] = False
                result['chain_breaks'].append({
                    'event_id': event.id,
                    'position': i,
                    'expected_previous_hash': previous_hash,
                    'actual_previous_hash': event.previous_hash
                })
            previous_hash = event.current_hash
        
        return result
    
    def count_events(self) -> int:
        """Get total number of audit events"""
        return self.storage.count(self.table_name)
