"""
Identifier generation for student records.

Ids combine the current time in milliseconds with a short random suffix. They
are not checked against the store, so uniqueness is probabilistic.
"""

import secrets
import string
import time

ID_ALPHABET = string.digits + string.ascii_lowercase
RANDOM_SUFFIX_LENGTH = 6


def generate_student_id() -> str:
    """
    Generate a new student id.

    Returns:
        str: Id of the form "<epoch milliseconds>-<6 base36 characters>"
    """
    timestamp = int(time.time() * 1000)
    random_suffix = ''.join(secrets.choice(ID_ALPHABET) for _ in range(RANDOM_SUFFIX_LENGTH))
    return f"{timestamp}-{random_suffix}"
