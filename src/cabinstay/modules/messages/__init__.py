from cabinstay.modules.messages.inbox import REPLIED, UNREAD, GuestInbox

__all__ = ["GuestInbox", "REPLIED", "UNREAD"]
