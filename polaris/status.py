from enum import Enum
from typing import Tuple


class Status(Enum):
    INVALID = 0

    # Input
    INPUT = 10
    SENSITIVE_INPUT = 11
    INPUT_2 = 12
    INPUT_3 = 13
    INPUT_4 = 14
    INPUT_5 = 15
    INPUT_6 = 16
    INPUT_7 = 17
    INPUT_8 = 18
    INPUT_9 = 19

    # Success
    SUCCESS = 20
    SUCCESS_1 = 21
    SUCCESS_2 = 22
    SUCCESS_3 = 23
    SUCCESS_4 = 24
    SUCCESS_5 = 25
    SUCCESS_6 = 26
    SUCCESS_7 = 27
    SUCCESS_8 = 28
    SUCCESS_9 = 29

    # Redirect
    REDIRECT_TEMPORARY = 30
    REDIRECT_PERMANENT = 31
    REDIRECT_2 = 32
    REDIRECT_3 = 33
    REDIRECT_4 = 34
    REDIRECT_5 = 35
    REDIRECT_6 = 36
    REDIRECT_7 = 37
    REDIRECT_8 = 38
    REDIRECT_9 = 39

    # Temporary failure
    TEMPORARY_FAILURE = 40
    SERVER_UNAVAILABLE = 41
    CGI_ERROR = 42
    PROXY_ERROR = 43
    SLOW_DOWN = 44
    TEMPORARY_FAILURE_5 = 45
    TEMPORARY_FAILURE_6 = 46
    TEMPORARY_FAILURE_7 = 47
    TEMPORARY_FAILURE_8 = 48
    TEMPORARY_FAILURE_9 = 49

    # Permanent failure
    PERMANENT_FAILURE = 50
    NOT_FOUND = 51
    GONE = 52
    PROXY_REQUEST_REFUSED = 53
    PERMANENT_FAILURE_4 = 54
    PERMANENT_FAILURE_5 = 55
    PERMANENT_FAILURE_6 = 56
    PERMANENT_FAILURE_7 = 57
    PERMANENT_FAILURE_8 = 58
    BAD_REQUEST = 59

    # Client certificates
    CLIENT_CERTIFICATE_REQUIRED = 60
    CERTIFICATE_NOT_AUTHORIZED = 61
    CERTIFICATE_NOT_VALID = 62
    CLIENT_CERTIFICATE_3 = 63
    CLIENT_CERTIFICATE_4 = 64
    CLIENT_CERTIFICATE_5 = 65
    CLIENT_CERTIFICATE_6 = 66
    CLIENT_CERTIFICATE_7 = 67
    CLIENT_CERTIFICATE_8 = 68
    CLIENT_CERTIFICATE_9 = 69

    @classmethod
    def from_byte(cls, value: int) -> "Status":
        """Map a raw status byte to a member, or INVALID if none matches."""
        if not 0 <= value <= 255:
            raise ValueError(f"{value} does not fit in a status byte")

        try:
            return cls(value)
        except ValueError:
            return cls.INVALID

    def in_range(self, low: int, high: int) -> bool:
        return self is not Status.INVALID and low <= self.value <= high

    def is_input(self):
        return self.in_range(10, 19)

    def is_success(self):
        return self.in_range(20, 29)

    def is_redirect(self):
        return self.in_range(30, 39)

    def is_temporary_failure(self):
        return self.in_range(40, 49)

    def is_permanent_failure(self):
        return self.in_range(50, 59)

    def is_client_certificate_failure(self):
        return self.in_range(60, 69)

    def first_digit(self) -> int:
        return self.value // 10

    def last_digit(self) -> int:
        return self.value % 10

    def digit_pair(self) -> Tuple[int, int]:
        return self.first_digit(), self.last_digit()
