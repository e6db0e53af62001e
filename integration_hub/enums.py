from enum import Enum


class OwnerType(str, Enum):
	HEAD_OFFICE = "head_office"
	FRANCHISEE = "franchisee"


class LeadType(str, Enum):
	FRANCHISE_SALE = "franchise_sale"  # head-office franchise-sales funnel
	BOOKING = "booking"  # a franchisee's booking funnel

	@classmethod
	def for_owner(cls, owner_type) -> "LeadType":
		if OwnerType(owner_type) == OwnerType.HEAD_OFFICE:
			return cls.FRANCHISE_SALE
		return cls.BOOKING


class MessageStatus(str, Enum):
	PENDING = "pending"
	PROCESSED = "processed"
	FAILED = "failed"


class AssignmentStrategy(str, Enum):
	FIXED_USER = "fixed_user"
	FIRST_ADMIN = "first_admin"
	ROUND_ROBIN = "round_robin"


class TriggerType(str, Enum):
	ALWAYS = "always"
	FIRST_MESSAGE = "first_message"
	KEYWORDS = "keywords"


class KeywordMatchType(str, Enum):
	ANY = "any"
	ALL = "all"


class RoutingReason(str, Enum):
	DUPLICATE = "duplicate"
	NO_TRIGGER_MATCH = "no_trigger_match"
	TRIGGER_MATCHED = "trigger_matched"


class UsageCounter(str, Enum):
	MESSAGES_RECEIVED = "messages_received"
	LEADS_CREATED = "leads_created"
	DUPLICATES_PREVENTED = "duplicates_prevented"


class StaffRole(str, Enum):
	SUPER_ADMIN = "super_admin"
	UK = "uk"
	UK_EMPLOYEE = "uk_employee"
	FRANCHISEE = "franchisee"
	ADMIN = "admin"
	EMPLOYEE = "employee"


class AttachmentKind(str, Enum):
	IMAGE = "image"
	VIDEO = "video"
	DOCUMENT = "document"
	AUDIO = "audio"
