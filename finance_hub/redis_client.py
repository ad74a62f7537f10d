import redis

def get_redis(url: str, timeout: float = 1.0) -> redis.Redis:
    # Short socket timeouts keep a dead cache from stalling request handlers.
    return redis.Redis.from_url(
        url,
        decode_responses=True,
        socket_timeout=timeout,
        socket_connect_timeout=timeout,
    )
