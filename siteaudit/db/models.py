from __future__ import annotations


from sqlalchemy import JSON, Column, DateTime, ForeignKey, Integer, Text, UniqueConstraint, func
from sqlalchemy.orm import declarative_base, relationship


Base = declarative_base()


class AuditRun(Base):
    __tablename__ = "audit_runs"

    run_id = Column(Integer, primary_key=True)
    client_id = Column(Text, nullable=True, index=True)
    name = Column(Text, nullable=False)
    base_url = Column(Text, nullable=False)
    status = Column(Text, nullable=False, index=True)
    crawl_settings = Column(JSON, nullable=False)
    summary = Column(JSON, nullable=True)
    issues = Column(JSON, nullable=True)
    # queue and visited set of a paused crawl, null once terminal
    frontier_state = Column(JSON, nullable=True)
    start_time = Column(DateTime(timezone=True), nullable=True)
    end_time = Column(DateTime(timezone=True), nullable=True)
    duration_ms = Column(Integer, nullable=True)
    error = Column(Text, nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    pages = relationship(
        "CrawledPage",
        back_populates="run",
        cascade="all, delete-orphan",
        order_by="CrawledPage.position",
    )


class CrawledPage(Base):
    __tablename__ = "crawled_pages"
    __table_args__ = (UniqueConstraint("run_id", "url", name="uq_crawled_pages_run_url"),)

    page_id = Column(Integer, primary_key=True)
    run_id = Column(Integer, ForeignKey("audit_runs.run_id", ondelete="CASCADE"), nullable=False, index=True)
    # order in which the page was crawled within its run
    position = Column(Integer, nullable=False)
    url = Column(Text, nullable=False)
    status_code = Column(Integer, nullable=False, default=0)
    response_time_ms = Column(Integer, nullable=False, default=0)
    word_count = Column(Integer, nullable=False, default=0)
    title = Column(Text, nullable=True)
    data = Column(JSON, nullable=False)

    run = relationship("AuditRun", back_populates="pages")
