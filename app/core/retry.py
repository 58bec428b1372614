"""
Retry utilities with exponential backoff for async functions.

Only the CSV import driver uses these, around single POST /trips calls.
That is safe because trip creation is idempotent; the service's own write
path never retries.
"""

import asyncio
import logging
from functools import wraps
from typing import Any, Callable, TypeVar

import httpx

logger = logging.getLogger(__name__)

F = TypeVar("F", bound=Callable[..., Any])

class RetryableError(Exception):
    """
    Exception that should be retried with exponential backoff.
    
    Used for transient failures that may succeed on retry:
    - API temporarily unavailable (5xx responses)
    - Connection resets and timeouts while the server restarts
    """
    pass

class NonRetryableError(Exception):
    """
    Exception that should NOT be retried.
    
    Used for deterministic failures that won't change on retry:
    - Rows rejected by validation (4xx responses)
    - Trip not found
    """
    pass

def async_retry(
    max_attempts: int = 3,
    base_delay: float = 1.0,
    max_delay: float = 10.0
) -> Callable[[F], F]:
    """Decorator for async functions with exponential backoff retry logic.
    
    Args:
        max_attempts: Maximum number of attempts (default: 3)
        base_delay: Initial delay in seconds between retries (default: 1.0)
        max_delay: Maximum delay in seconds between retries (default: 10.0)
    
    Error Handling:
    - RetryableError, httpx.TransportError, asyncio.TimeoutError: retried
    - NonRetryableError and anything else: raised immediately
    
    Backoff Strategy:
    - delay = base_delay * (2 ^ attempt), capped at max_delay
    """
    def decorator(func: Callable) -> Callable:
        @wraps(func)
        async def wrapper(*args: Any, **kwargs: Any) -> Any:
            last_exception = None
            
            for attempt in range(max_attempts):
                try:
                    return await func(*args, **kwargs)
                
                except NonRetryableError:
                    raise
                
                except (RetryableError, httpx.TransportError, asyncio.TimeoutError) as e:
                    last_exception = e
                    if attempt < max_attempts - 1:
                        delay = min(base_delay * (2 ** attempt), max_delay)
                        logger.warning(
                            f"Retry attempt {attempt + 1}/{max_attempts} for {func.__name__}. "
                            f"Error: {str(e)}. Waiting {delay:.2f}s..."
                        )
                        await asyncio.sleep(delay)
                    else:
                        logger.error(
                            f"All {max_attempts} attempts failed for {func.__name__}. "
                            f"Final error: {str(e)}"
                        )
            
            raise last_exception
        
        return wrapper
    return decorator
