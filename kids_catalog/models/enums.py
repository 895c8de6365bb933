"""
Enumerations shared by the Kids Catalog models.

Values are stored as plain strings; the enums define the closed sets
that the services validate against.
"""

import enum


class ContentType(enum.Enum):
    """Kind of playable media item."""
    STORY = 'story'
    AFFIRMATION = 'affirmation'
    MEDITATION = 'meditation'
    MUSIC = 'music'


class AgeRange(enum.Enum):
    """Target age bracket for a content item."""
    AGE_3_5 = '3-5'
    AGE_6_8 = '6-8'
    AGE_9_12 = '9-12'


class ContentTag(enum.Enum):
    """Editorial tags used for browsing and recommendations."""
    FOLK_TALES = 'folk_tales'
    AFFIRMATIONS = 'affirmations'
    MEDITATIONS = 'meditations'
    MUSIC = 'music'
    ADVENTURE = 'adventure'
    FANTASY = 'fantasy'
    EDUCATIONAL = 'educational'
    CALMING = 'calming'
    WISDOM = 'wisdom'
    MORAL = 'moral'


class Language(enum.Enum):
    """Supported content languages.

    The set is closed: every language code accepted by the catalog is a
    member here, so per-language data is keyed by this enum instead of
    free-form strings.
    """
    EN = 'en'
    HI = 'hi'

    @property
    def display_name(self) -> str:
        return _LANGUAGE_INFO[self]['name']

    @property
    def native_name(self) -> str:
        return _LANGUAGE_INFO[self]['native_name']

    def to_dict(self):
        return {
            'code': self.value,
            'name': self.display_name,
            'native_name': self.native_name,
        }


_LANGUAGE_INFO = {
    Language.EN: {'name': 'English', 'native_name': 'English'},
    Language.HI: {'name': 'Hindi', 'native_name': 'हिन्दी'},
}

DEFAULT_LANGUAGE = Language.EN


class LifecycleStatus(enum.Enum):
    """Lifecycle of catalog records.

    Archived records are hidden from end users but still exist, so rows
    that reference them (favorites, categories) stay valid.
    """
    ACTIVE = 'active'
    ARCHIVED = 'archived'


def enum_values(enum_class):
    """Return the stored string values of an enum class."""
    return [member.value for member in enum_class]
