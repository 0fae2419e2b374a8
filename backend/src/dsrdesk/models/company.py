"""Company model: the tenant that receives DSRs."""
from sqlalchemy import Column, String
from sqlalchemy.orm import relationship

from dsrdesk.models.base import Base


class Company(Base):
    """
    A business collecting DSRs through its public form.

    ``dsr_form_identifier`` is the opaque token embedded in the public form
    link. CompanyService lets each admin user create at most one company.
    """

    __tablename__ = "companies"

    name = Column(String, nullable=False)
    admin_user_id = Column(String, nullable=False, index=True)
    admin_email = Column(String, nullable=False)
    dsr_form_identifier = Column(String(64), nullable=False, unique=True, index=True)

    dsr_requests = relationship("DSRRequest", back_populates="company")

    def __repr__(self) -> str:
        """String representation."""
        return f"<Company(id={self.id}, name={self.name})>"
