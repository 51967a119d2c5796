"""MongoDB adapters.

Collection names are shared by the repositories and the connection module.
"""

import os

DATABASE_NAME = os.getenv('MONGODB_DATABASE', 'channel_accounts')
USERS_COLLECTION_NAME = 'users'
SUBSCRIPTIONS_COLLECTION_NAME = 'subscriptions'
