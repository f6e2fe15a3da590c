from csvquery.utils.connection_utils import create_url_from_options
from csvquery.utils.connection_utils import dispose_all_engines
from csvquery.utils.connection_utils import get_engine_for_options

__all__ = [
    'create_url_from_options',
    'dispose_all_engines',
    'get_engine_for_options',
]
