from pydantic import BaseModel, Field

from linkdash.components.store import StoreSettings
from linkdash.domain.entities import ADMIN_EDITED_TAG, COPY_SUFFIX, DEFAULT_GROUP


class StorageRules(BaseModel):
    data_dir: str = "./data"
    global_key: str = "global.json"
    users_dir: str = "users"
    userlist_key: str = "userlist.json"

class FallbackRules(BaseModel):
    enabled: bool = True
    path: str = "./data/fallback-cache.json"
    global_key: str = "linkdash.global.v2"
    personal_key: str = "linkdash.personal.v2"

class LinkRules(BaseModel):
    default_group: str = Field(default=DEFAULT_GROUP, min_length=1)
    admin_edited_tag: str = Field(default=ADMIN_EDITED_TAG, min_length=1)
    copy_suffix: str = COPY_SUFFIX

class IdentityRules(BaseModel):
    admins: list[str] = Field(default_factory=list)
    user_header: str = "X-Remote-User"

class LoggingRules(BaseModel):
    level: str = "INFO"

class Rules(BaseModel):
    storage: StorageRules = Field(default_factory=StorageRules)
    fallback: FallbackRules = Field(default_factory=FallbackRules)
    links: LinkRules = Field(default_factory=LinkRules)
    identity: IdentityRules = Field(default_factory=IdentityRules)
    logging: LoggingRules = Field(default_factory=LoggingRules)

    def store_settings(self) -> StoreSettings:
        return StoreSettings(
            global_key=self.storage.global_key,
            users_dir=self.storage.users_dir,
            userlist_key=self.storage.userlist_key,
            cache_global_key=self.fallback.global_key,
            cache_personal_key=self.fallback.personal_key,
            default_group=self.links.default_group,
            admin_edited_tag=self.links.admin_edited_tag,
            copy_suffix=self.links.copy_suffix,
        )
