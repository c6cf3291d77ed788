from sqlalchemy import Boolean, Column, Index, Integer, Text, UniqueConstraint, text
from sqlalchemy.orm import declarative_base

Base = declarative_base()
metadata = Base.metadata


class ServiceConfigs(Base):
    __tablename__ = 'service_configs'
    __table_args__ = (
        UniqueConstraint('sitter_id', 'service_type'),
    )

    id = Column(Integer, primary_key=True)
    sitter_id = Column(Text, nullable=False)
    service_type = Column(Text, nullable=False)
    enabled = Column(Boolean, nullable=False, server_default=text('1'))
    default_duration_min = Column(Integer, nullable=False)
    max_duration_min = Column(Integer, nullable=False)
    lead_time_min = Column(Integer, nullable=False)
    buffer_before_min = Column(Integer, nullable=False, server_default=text('0'))
    buffer_after_min = Column(Integer, nullable=False, server_default=text('0'))
    capacity = Column(Integer, nullable=False, server_default=text('1'))
    check_in_start_min = Column(Integer)
    updated_at = Column(Text, nullable=False, server_default=text('CURRENT_TIMESTAMP'))


class AvailabilityRules(Base):
    __tablename__ = 'availability_rules'
    __table_args__ = (
        Index('ix_availability_rules_lookup', 'sitter_id', 'service_type', 'day_of_week'),
    )

    id = Column(Integer, primary_key=True)
    sitter_id = Column(Text, nullable=False)
    service_type = Column(Text, nullable=False)
    day_of_week = Column(Integer, nullable=False)  # 0 = Monday, 6 = Sunday
    start_min = Column(Integer, nullable=False)
    end_min = Column(Integer, nullable=False)
    created_at = Column(Text, nullable=False, server_default=text('CURRENT_TIMESTAMP'))


class AvailabilityExceptions(Base):
    __tablename__ = 'availability_exceptions'
    __table_args__ = (
        Index('ix_availability_exceptions_lookup', 'sitter_id', 'service_type', 'date'),
    )

    id = Column(Integer, primary_key=True)
    sitter_id = Column(Text, nullable=False)
    service_type = Column(Text, nullable=False)
    date = Column(Text, nullable=False)  # YYYY-MM-DD, sitter-local
    kind = Column(Text, nullable=False)  # blocked / custom_hours
    # NULL range = row only marks the exception (blocked, or custom hours with no ranges)
    start_min = Column(Integer)
    end_min = Column(Integer)
    created_at = Column(Text, nullable=False, server_default=text('CURRENT_TIMESTAMP'))


class Bookings(Base):
    __tablename__ = 'bookings'
    __table_args__ = (
        Index('ix_bookings_sitter_window', 'sitter_id', 'start_at', 'end_at'),
    )

    id = Column(Integer, primary_key=True)
    sitter_id = Column(Text, nullable=False)
    service_type = Column(Text, nullable=False)
    # ISO-8601 instants, UTC
    start_at = Column(Text, nullable=False)
    end_at = Column(Text, nullable=False)
    status = Column(Text, nullable=False, server_default=text("'pending'"))
    created_at = Column(Text, nullable=False, server_default=text('CURRENT_TIMESTAMP'))


class AvailabilityAuditLog(Base):
    __tablename__ = 'availability_audit_log'
    __table_args__ = (
        Index('ix_availability_audit_log_sitter', 'sitter_id', 'created_at'),
    )

    id = Column(Integer, primary_key=True)
    sitter_id = Column(Text, nullable=False)
    actor_user_id = Column(Text, nullable=False)
    action = Column(Text, nullable=False)
    service_type = Column(Text)
    date_key = Column(Text)
    payload_summary = Column(Text)  # JSON
    created_at = Column(Text, nullable=False)
