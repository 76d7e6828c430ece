from dataclasses import dataclass


@dataclass
class StorageKeys:
    key = "key"
    value = "value"
    dataType = "dataType"
    timestamp = "timestamp"
    deviceId = "deviceId"
    sessionId = "sessionId"
    migrated = "migrated"
    deviceIdStorageKey = "deviceId"
    snapshotPrefix = "fallback_data_"
    snapshotMetadataKey = "fallback_metadata"
