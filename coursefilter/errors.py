"""
Error taxonomy.

DecodeError, MissingCourseData and NotificationDeliveryFailure never leave the
package: they are recovered by degrading to passthrough or by giving up quietly.
"""

from __future__ import annotations


class CourseFilterError(Exception):
    """Base class for all errors raised by coursefilter."""


class DecodeError(CourseFilterError):
    """A chunk of the response body is not valid UTF-8."""


class MalformedEnvelope(CourseFilterError):
    """The response body is not a JSON envelope of the expected shape."""


class MissingCourseData(CourseFilterError):
    """The envelope parsed fine but carries no course list."""


class NotificationDeliveryFailure(CourseFilterError):
    """The page context did not accept the completion message."""


class ConfigError(CourseFilterError):
    pass


class StoreError(CourseFilterError):
    pass
