"""Firestore collection names, storage paths and document field names."""

# Collections
USERS_COLLECTION = "users"
BOOKS_COLLECTION = "books"
SWAPS_COLLECTION = "swaps"
CHATS_COLLECTION = "chats"
MESSAGES_COLLECTION = "messages"

# Storage paths
BOOK_IMAGES_PATH = "book_images"
PROFILE_IMAGES_PATH = "profile_images"

# Shared fields
ID_FIELD = "id"
CREATED_AT_FIELD = "createdAt"
UPDATED_AT_FIELD = "updatedAt"
STATUS_FIELD = "status"

# Book fields
BOOK_ID_FIELD = "bookId"
OWNER_ID_FIELD = "ownerId"
CONDITION_FIELD = "condition"
IMAGE_URL_FIELD = "imageUrl"
SWAP_ID_FIELD = "swapId"

# Swap fields
SENDER_ID_FIELD = "senderId"
RECIPIENT_ID_FIELD = "recipientId"

# User fields
LAST_LOGIN_AT_FIELD = "lastLoginAt"
NOTIFICATION_SETTINGS_FIELD = "notificationSettings"

# Chat fields
PARTICIPANT_IDS_FIELD = "participantIds"
UNREAD_COUNTS_FIELD = "unreadCounts"
CHAT_ID_FIELD = "chatId"
IS_READ_FIELD = "isRead"
TIMESTAMP_FIELD = "timestamp"
LAST_MESSAGE_ID_FIELD = "lastMessageId"
LAST_MESSAGE_TEXT_FIELD = "lastMessageText"
LAST_MESSAGE_TIME_FIELD = "lastMessageTime"
LAST_MESSAGE_SENDER_ID_FIELD = "lastMessageSenderId"
