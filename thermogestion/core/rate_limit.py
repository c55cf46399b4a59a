# thermogestion/core/rate_limit.py
from slowapi import Limiter
from slowapi.util import get_remote_address

# one shared limiter for the whole app, keyed on client address
limiter = Limiter(key_func=get_remote_address)

exempt = limiter.exempt
