import os
import sys


class Colors:
    RED = '\033[0;31m'
    GREEN = '\033[0;32m'
    YELLOW = '\033[1;33m'
    BLUE = '\033[0;34m'
    END = '\033[0m'


def _use_color(stream):
    if os.environ.get('NO_COLOR'):
        return False
    return hasattr(stream, 'isatty') and stream.isatty()


def paint(text, color, stream):
    if _use_color(stream):
        return f"{color}{text}{Colors.END}"
    return text


def _emit(prefix, color, message, stream):
    print(f"{paint(prefix, color, stream)} {message}", file=stream, flush=True)


def info(message, stream=None):
    stream = stream or sys.stdout
    _emit('[INFO]', Colors.GREEN, message, stream)


def warn(message, stream=None):
    stream = stream or sys.stdout
    _emit('[WARN]', Colors.YELLOW, message, stream)


def error(message, stream=None):
    stream = stream or sys.stderr
    for line in str(message).splitlines() or ['']:
        _emit('[ERROR]', Colors.RED, line, stream)


def success(message, stream=None):
    stream = stream or sys.stdout
    _emit('[SUCCESS]', Colors.GREEN, message, stream)


def header(title, stream=None, rule='=' * 60):
    stream = stream or sys.stdout
    print(file=stream)
    print(paint(rule, Colors.BLUE, stream), file=stream)
    print(paint(title, Colors.BLUE, stream), file=stream)
    print(paint(rule, Colors.BLUE, stream), file=stream)
    print(file=stream, flush=True)
