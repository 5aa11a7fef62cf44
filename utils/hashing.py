"""
Identifier generation
"""
import os
import time


def generate_object_id() -> str:
    """
    24 character hexadecimal course id

    The first 8 characters are the creation time in seconds and the last 16
    are random, so ids sort roughly by creation time.
    """
    seconds = int(time.time()) & 0xFFFFFFFF
    return f"{seconds:08x}{os.urandom(8).hex()}"
