import json
import logging
import os

logger = logging.getLogger(__name__)

PERMISSIONS_PATH = 'config/permissions.json'


class PermissionsError(Exception):
    pass


def _rule_matches(rule, user_id):
    """
    One allow rule against a user id (as a string).

    Rules are "*" for anyone, a single id (int or str), a comma separated
    string of ids, or a list of ids given as strings or ints.
    """
    if isinstance(rule, bool):
        return False
    if isinstance(rule, int):
        return str(rule) == user_id
    if isinstance(rule, str):
        if rule == '*' or rule == user_id:
            return True
        if ',' in rule:
            return user_id in [u.strip() for u in rule.split(',')]
        return False
    if isinstance(rule, list):
        ids = [str(u).strip() for u in rule
               if isinstance(u, (str, int)) and not isinstance(u, bool)]
        return user_id in ids
    return False


class PermissionsConfig:
    """Which users may talk to the bot, globally and per chat."""

    def __init__(self, allow_all='', chats=None):
        self.allow_all = allow_all
        self.chats = dict(chats or {})

    @classmethod
    def allow_everyone(cls):
        return cls(allow_all='*')

    @classmethod
    def from_dict(cls, data):
        if not isinstance(data, dict):
            raise PermissionsError('permissions must be a JSON object')
        chats = data.get('chats', {})
        if not isinstance(chats, dict):
            raise PermissionsError("'chats' must be a JSON object")
        return cls(data.get('allow_all', ''), {str(k): v for k, v in chats.items()})

    def to_dict(self):
        return {'allow_all': self.allow_all, 'chats': self.chats}

    def user_has_access(self, chat_id, user_id):
        chat_id, user_id = str(chat_id), str(user_id)
        logger.debug(f"Checking access for user '{user_id}' in chat '{chat_id}'")

        if _rule_matches(self.allow_all, user_id):
            logger.debug(f"User '{user_id}' has access due to allow_all rule")
            return True

        if chat_id in self.chats:
            allowed = _rule_matches(self.chats[chat_id], user_id)
            logger.debug(f"User '{user_id}' {'has' if allowed else 'does not have'} access to chat '{chat_id}'")
            return allowed

        return False


def save_permissions(config, path=PERMISSIONS_PATH):
    folder = os.path.dirname(path)
    if folder:
        os.makedirs(folder, exist_ok=True)
    with open(path, 'w') as f:
        json.dump(config.to_dict(), f, indent=2)
    logger.debug(f"Configuration saved to '{path}'")


def load_permissions(path=PERMISSIONS_PATH):
    """
    Read the permissions file.

    A missing file is created with an allow-everyone rule first, so a
    fresh install answers anybody until the file is edited.
    """
    for attempt in range(1, 4):
        try:
            with open(path, 'r') as f:
                data = f.read()
            break
        except FileNotFoundError:
            if attempt == 3:
                raise PermissionsError(f"Failed to read {path} after 3 attempts")
            logger.debug(f"Attempt {attempt} to read {path} failed, creating initial config")
            save_permissions(PermissionsConfig.allow_everyone(), path)

    try:
        config = PermissionsConfig.from_dict(json.loads(data))
    except json.JSONDecodeError as e:
        raise PermissionsError(f"Failed to parse {path}: {e}")

    logger.debug('Successfully loaded permissions')
    return config
