from cabinstay.modules.visitors.tracker import UNKNOWN_IP, VisitorDedupeTracker, client_ip

__all__ = ["UNKNOWN_IP", "VisitorDedupeTracker", "client_ip"]
