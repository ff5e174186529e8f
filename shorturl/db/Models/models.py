from sqlalchemy import Column, String, Integer, DateTime, Boolean, Text, ForeignKey, Index
from sqlalchemy.orm import declarative_base, relationship

Base = declarative_base()

class ShortURL(Base):
    __tablename__ = "short_urls"

    id = Column(Integer, primary_key=True, autoincrement=True)
    original_url = Column(Text, nullable=False)

    # Unique across active and inactive rows; this constraint is the final word
    # on shortcode exclusivity.
    shortcode = Column(String(20), unique=True, index=True, nullable=False)

    created_at = Column(DateTime(timezone=True), nullable=False)
    expires_at = Column(DateTime(timezone=True), nullable=False, index=True)
    is_active = Column(Boolean, nullable=False, default=True)

    clicks = relationship(
        "Click",
        back_populates="short_url",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )

    def __repr__(self):
        return f"<ShortURL {self.shortcode} active={self.is_active}>"


class Click(Base):
    __tablename__ = "clicks"
    __table_args__ = (
        Index("ix_clicks_short_url_id_timestamp", "short_url_id", "timestamp"),
    )

    id = Column(Integer, primary_key=True, autoincrement=True)
    short_url_id = Column(
        Integer, ForeignKey("short_urls.id", ondelete="CASCADE"), nullable=False
    )
    timestamp = Column(DateTime(timezone=True), nullable=False)
    source = Column(String(255), nullable=False, default="Direct")
    user_agent = Column(Text, nullable=False, default="Unknown")
    ip_address = Column(String(64), nullable=True)
    location = Column(String(255), nullable=False, default="Unknown Location")

    short_url = relationship("ShortURL", back_populates="clicks")
