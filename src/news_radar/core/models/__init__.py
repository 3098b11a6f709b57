"""ORM models.  Importing this package registers every table on ``Base.metadata``."""

from news_radar.core.models.articles import Article, UserSetting
from news_radar.core.models.base import Base
from news_radar.core.models.sources import Keyword, Source
from news_radar.core.models.users import User

__all__ = [
    "Article",
    "Base",
    "Keyword",
    "Source",
    "User",
    "UserSetting",
]
