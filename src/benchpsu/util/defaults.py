# -*- coding: utf-8 -*-

DEFAULT_LOGLEVEL = "INFO"
TEST_LOGLEVEL = "TRACE"
SINGLE_LINE_ERR_LOG = False  # reformat tracebacks into a single line

DEFAULT_BAUD_RATE = 9600
DEFAULT_DATA_BITS = 8
DEFAULT_TIMEOUT_MS = 2000
DEFAULT_READ_TERMINATION = "\n"
DEFAULT_MAX_RESPONSE_BYTES = 256
DEFAULT_SAMPLE_INTERVAL = 1.0  # seconds
MIN_PORT_LENGTH = 4  # e.g. "COM5"
