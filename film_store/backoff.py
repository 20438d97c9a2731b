import datetime
import logging
import time
from functools import wraps
from typing import Tuple, Type


def backoff(
    exceptions: Tuple[Type[BaseException], ...] = (Exception,),
    start_sleep_time=0.1,
    factor=2,
    border_sleep_time=10,
    timeout=datetime.timedelta(minutes=1),
    sleep=time.sleep,
):
    """
    Retry the wrapped function after a pause when it raises one of `exceptions`.
    The pause grows exponentially (factor) up to border_sleep_time.

    Formula:
        t = start_sleep_time * factor^(n) if t < border_sleep_time
        t = border_sleep_time if t >= border_sleep_time
    :param exceptions: exception types that trigger a retry
    :param start_sleep_time: first pause
    :param factor: how much the pause grows after each failure
    :param border_sleep_time: longest single pause
    :param timeout: total time spent sleeping after which the error is re-raised
    :param sleep: sleep function, replaceable in tests
    :return: result of the wrapped function
    """

    def get_sleep_time(n):
        time_interval = start_sleep_time * factor ** n
        return (
            border_sleep_time
            if time_interval >= border_sleep_time
            else time_interval
        )

    def func_wrapper(func):
        @wraps(func)
        def inner(*args, **kwargs):
            n = 0
            total_sleep_time = datetime.timedelta(seconds=0)
            while True:
                try:
                    return func(*args, **kwargs)
                except exceptions as e:
                    if total_sleep_time >= timeout:
                        logging.warning(
                            "Error %r was not resolved in %s, raising...", e, timeout
                        )
                        raise

                    sleep_time = get_sleep_time(n)
                    logging.info(
                        "%s failed with %r, retrying in %s sec",
                        getattr(func, "__name__", repr(func)),
                        e,
                        sleep_time,
                    )
                    sleep(sleep_time)
                    total_sleep_time += datetime.timedelta(seconds=sleep_time)
                    n += 1

        return inner

    return func_wrapper
