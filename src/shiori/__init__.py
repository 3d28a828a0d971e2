"""shiori: learner memory, mastery and curriculum coverage engine."""

from shiori.consts import VERSION

__version__ = VERSION
