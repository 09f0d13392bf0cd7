REDIS_META_KEY = "room:meta:{code}" # room code - room metadata hash
REDIS_USERS_KEY = "room:users:{code}" # room code - hash of user id -> user json
REDIS_MESSAGES_KEY = "room:messages:{code}" # room code - list of message json, oldest first

# **Example `room:meta:{code}` hash fields**
# - `code` = `{roomCode}`
# - `created_at` = epoch milliseconds

# All three keys share the room TTL and are refreshed together on any activity.
