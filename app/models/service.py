from sqlmodel import Field, SQLModel


class ServiceBase(SQLModel):
    code: str = Field(unique=True, index=True)
    name: str
    category: str | None = None
    duration_minutes: int = Field(gt=0)
    buffer_minutes: int = Field(default=0, ge=0)
    display_order: int = 0
    is_active: bool = True


class Service(ServiceBase, table=True):
    __tablename__ = "services"
    id: int | None = Field(default=None, primary_key=True)

    @property
    def total_minutes(self) -> int:
        """Treatment plus buffer; the span every overlap test must use."""
        return self.duration_minutes + self.buffer_minutes


class ServicePublic(SQLModel):
    id: int
    code: str
    name: str
    category: str | None = None
    duration_minutes: int
    buffer_minutes: int
    total_minutes: int
    display_order: int
