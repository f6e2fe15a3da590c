from csvquery.adapters.type_conversion import TextConverter, to_text
from csvquery.adapters.type_mapping import TypeNameResolver, resolve_type_name

__all__ = [
    'TextConverter',
    'to_text',
    'TypeNameResolver',
    'resolve_type_name',
]
