"""
Protobuf message -> plain record.

Field names use the camelCase JSON names, byte fields stay raw bytes, enums
become their value names and only the populated member of a oneof is kept.
Unlike protobuf JSON, zero-valued scalars are kept, so an output index of 0
is still present in the record.
"""

from typing import Any, Dict

from google.protobuf.descriptor import FieldDescriptor
from google.protobuf.message import Message


def _value(field: FieldDescriptor, value: Any) -> Any:
    if field.type == FieldDescriptor.TYPE_MESSAGE:
        return message_to_record(value)
    if field.type == FieldDescriptor.TYPE_ENUM:
        enum_value = field.enum_type.values_by_number.get(value)
        return enum_value.name if enum_value is not None else value
    if field.type == FieldDescriptor.TYPE_BYTES:
        return bytes(value)
    return value


def _is_map(field: FieldDescriptor) -> bool:
    return field.message_type is not None and field.message_type.GetOptions().map_entry


def message_to_record(message: Message) -> Dict[str, Any]:
    record: Dict[str, Any] = {}
    for field in message.DESCRIPTOR.fields:
        value = getattr(message, field.name)
        if _is_map(field):
            value_field = field.message_type.fields_by_name["value"]
            record[field.json_name] = {k: _value(value_field, v) for k, v in value.items()}
        elif field.is_repeated:
            record[field.json_name] = [_value(field, v) for v in value]
        elif field.has_presence and not message.HasField(field.name):
            continue
        else:
            record[field.json_name] = _value(field, value)
    return record
