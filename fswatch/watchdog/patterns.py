# fswatch/watchdog/patterns.py

"""
Pattern grammar and matching for watch patterns

Two grammars are supported, selected by a literal prefix:

    glob:   (default, forward slashes work on Windows too)
        foo/bar.jpg      - a specific file
        foo/*            - any file in the foo directory
        foo/bar/*.jpg    - any jpg in the foo/bar directory
        foo/**.png       - any png in the foo directory or below
        foo/*.{png,jpg}  - any png or jpg in the foo directory
    regex:  a Python regular expression matched against the whole path
"""
import os
import re
import logging
from typing import List, Optional, Union

from fswatch.exceptions import InvalidPatternError

logger = logging.getLogger(__name__)

GLOB_PREFIX = 'glob:'
REGEX_PREFIX = 'regex:'
RECURSIVE_MARKER = '**'

_GLOB_META = set('*?[{\\')
_REGEX_META = set('.^$*+?{}[]\\|()')

if os.sep == '\\':
    _SEP = r'[/\\]'
    _NOT_SEP = r'[^/\\]'
else:
    _SEP = '/'
    _NOT_SEP = '[^/]'
# A doubled backslash in a glob is a Windows separator on every platform
_ANY_SEP = r'[/\\]'


def split_syntax(pattern: str):
    """
    Split a pattern into its grammar name and body

    Returns:
        Tuple of ('glob' | 'regex', body)
    """
    if pattern.startswith(REGEX_PREFIX):
        return 'regex', pattern[len(REGEX_PREFIX):]
    if pattern.startswith(GLOB_PREFIX):
        return 'glob', pattern[len(GLOB_PREFIX):]
    return 'glob', pattern


def normalize_pattern(pattern: str) -> str:
    """
    Make sure Windows separators are double backslashes

    Regex patterns are left untouched since their backslashes are escapes.
    """
    if pattern.startswith(REGEX_PREFIX):
        return pattern
    return pattern.replace('\\\\', '\\').replace('\\', '\\\\')


def is_recursive_pattern(pattern: str) -> bool:
    # Recursion can't be detected in the regex grammar
    return RECURSIVE_MARKER in pattern and not pattern.startswith(REGEX_PREFIX)


def base_directory(pattern: str) -> str:
    """
    Derive the directory a pattern is anchored at

    The base is the leading run of directory components that contain no
    wildcard characters. The last component always names files and is
    never part of the base.

    Args:
        pattern: Normalized watch pattern

    Returns:
        Directory string in the same shape as the pattern ('' for the
        current directory)
    """
    syntax, body = split_syntax(pattern)
    meta = _REGEX_META if syntax == 'regex' else _GLOB_META

    if syntax == 'glob':
        body = body.replace('\\\\', '/')
    components = body.split('/')

    base: List[str] = []
    for component in components[:-1]:
        if any(char in meta for char in component):
            break
        base.append(component)

    directory = '/'.join(base)
    if not directory and body.startswith('/'):
        directory = '/'
    return directory


def translate_glob(glob: str) -> str:
    """
    Translate a glob into an equivalent regular expression

    Args:
        glob: Glob body without the 'glob:' prefix

    Returns:
        Regular expression string (anchor with fullmatch)

    Raises:
        InvalidPatternError: on unbalanced brackets or braces
    """
    parts: List[str] = []
    in_group = False
    i = 0
    n = len(glob)

    while i < n:
        char = glob[i]
        i += 1

        if char == '\\':
            if i >= n:
                raise InvalidPatternError(glob, "no character to escape")
            escaped = glob[i]
            i += 1
            parts.append(_ANY_SEP if escaped == '\\' else re.escape(escaped))

        elif char == '/':
            parts.append(_SEP)

        elif char == '*':
            if i < n and glob[i] == '*':
                parts.append('.*')
                i += 1
            else:
                parts.append(_NOT_SEP + '*')

        elif char == '?':
            parts.append(_NOT_SEP)

        elif char == '[':
            j = i
            negate = j < n and glob[j] == '!'
            if negate:
                j += 1
            # A leading ']' is a literal member of the class
            if j < n and glob[j] == ']':
                j += 1
            close = glob.find(']', j)
            if close < 0:
                raise InvalidPatternError(glob, "missing ']'")
            body = glob[i + 1 if negate else i:close]
            body = body.replace('\\', '\\\\').replace('^', '\\^')
            if negate:
                parts.append('[^/' + ('\\\\' if os.sep == '\\' else '') + body + ']')
            else:
                parts.append('[' + body + ']')
            i = close + 1

        elif char == '{':
            if in_group:
                raise InvalidPatternError(glob, "nested groups are not supported")
            in_group = True
            parts.append('(?:')

        elif char == '}' and in_group:
            in_group = False
            parts.append(')')

        elif char == ',' and in_group:
            parts.append('|')

        else:
            parts.append(re.escape(char))

    if in_group:
        raise InvalidPatternError(glob, "missing '}'")

    return ''.join(parts)


class PatternMatcher:
    """
    Compiled matcher for one watch pattern
    """

    def __init__(self, pattern: str, case_sensitive: Optional[bool] = None):
        """
        Compile a pattern

        Args:
            pattern: Pattern string, optionally prefixed with 'glob:' or 'regex:'
            case_sensitive: Case sensitivity (default: follows the platform)

        Raises:
            InvalidPatternError: if the pattern does not compile
        """
        self.pattern = pattern
        self.syntax, body = split_syntax(pattern)

        if case_sensitive is None:
            case_sensitive = os.path.normcase('A') == 'A'
        self.case_sensitive = case_sensitive
        flags = 0 if case_sensitive else re.IGNORECASE

        if self.syntax == 'regex':
            expression = body
        else:
            expression = translate_glob(body)

        try:
            self.compiled_pattern: re.Pattern = re.compile(expression, flags | re.DOTALL)
        except re.error as e:
            raise InvalidPatternError(pattern, str(e)) from e

        logger.debug(f"Compiled {self.syntax} pattern '{body}' -> {self.compiled_pattern.pattern}")

    def matches(self, path: Union[str, os.PathLike]) -> bool:
        """Check if the whole path matches the pattern"""
        return self.compiled_pattern.fullmatch(os.fspath(path)) is not None

    def __repr__(self):
        return f"PatternMatcher({self.pattern!r})"
