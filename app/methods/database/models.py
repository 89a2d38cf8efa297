from sqlalchemy import BigInteger, Column, String, Text
from .database import Base

class UserRow(Base):
    __tablename__ = "t_user"

    id = Column(BigInteger, primary_key=True, autoincrement=False)
    name = Column(String(255), unique=True, index=True, nullable=False)
    pwd = Column(String(255), nullable=False)
    role = Column(String(32), nullable=False)
    used_space = Column(BigInteger, nullable=False, default=0)
    # codec output, see methods/users/codec.py
    quota = Column(Text, nullable=False)
    preference = Column(Text, nullable=False)
