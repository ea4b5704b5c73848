from .store import CitizenRecord, EncryptedRecordStore, PolicyRecord, RecordView

__all__ = ["CitizenRecord", "EncryptedRecordStore", "PolicyRecord", "RecordView"]
