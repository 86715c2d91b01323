from sqlalchemy import Column, Integer, String, Float, DateTime, Text, ForeignKey, Boolean, JSON
from sqlalchemy.orm import relationship
from datetime import datetime
from .database import Base


class Project(Base):
    __tablename__ = "projects"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String, nullable=False)
    type = Column(String, nullable=False)  # 'deck' | 'covered_deck' | 'fence'
    address = Column(Text, nullable=True)
    status = Column(String, default="draft")
    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    design_inputs = relationship("DesignInputsVersion", back_populates="project",
                                 cascade="all, delete-orphan", order_by="DesignInputsVersion.version")
    assumptions = relationship("ProjectAssumptions", back_populates="project", uselist=False,
                               cascade="all, delete-orphan")
    takeoffs = relationship("Takeoff", back_populates="project",
                            cascade="all, delete-orphan", order_by="Takeoff.version")
    labor_plan = relationship("LaborPlan", back_populates="project", uselist=False,
                              cascade="all, delete-orphan")
    estimate = relationship("Estimate", back_populates="project", uselist=False,
                            cascade="all, delete-orphan")


class DesignInputsVersion(Base):
    """Every save of the design form is a new version — nothing is overwritten."""
    __tablename__ = "design_inputs_versions"

    id = Column(Integer, primary_key=True, index=True)
    project_id = Column(Integer, ForeignKey("projects.id"), nullable=False)
    version = Column(Integer, nullable=False)
    inputs_json = Column(JSON, nullable=False)
    created_at = Column(DateTime, default=datetime.utcnow)

    project = relationship("Project", back_populates="design_inputs")


class ProjectAssumptions(Base):
    """AssumptionOverrides for one project (one row per project)."""
    __tablename__ = "project_assumptions"

    id = Column(Integer, primary_key=True, index=True)
    project_id = Column(Integer, ForeignKey("projects.id"), unique=True, nullable=False)
    overrides_json = Column(JSON, default=dict)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    project = relationship("Project", back_populates="assumptions")


class Takeoff(Base):
    __tablename__ = "takeoffs"

    id = Column(Integer, primary_key=True, index=True)
    project_id = Column(Integer, ForeignKey("projects.id"), nullable=False)
    version = Column(Integer, nullable=False)
    assumptions_json = Column(JSON, default=dict)
    totals_json = Column(JSON, default=dict)
    created_at = Column(DateTime, default=datetime.utcnow)

    project = relationship("Project", back_populates="takeoffs")
    items = relationship("TakeoffLineItem", back_populates="takeoff",
                         cascade="all, delete-orphan", order_by="TakeoffLineItem.position")


class TakeoffLineItem(Base):
    """One priced line. Editable after generation (qty, waste, cost, vendor, notes)."""
    __tablename__ = "takeoff_line_items"

    id = Column(Integer, primary_key=True, index=True)
    takeoff_id = Column(Integer, ForeignKey("takeoffs.id"), nullable=False)
    position = Column(Integer, default=0)
    category = Column(String, nullable=False)
    name = Column(String, nullable=False)
    unit = Column(String, nullable=False)
    qty = Column(Float, default=0.0)
    waste_factor = Column(Float, default=0.0)
    unit_cost = Column(Float, default=0.0)
    vendor = Column(String, nullable=True)
    lead_time_days = Column(Integer, default=0)
    notes = Column(Text, nullable=True)
    is_allowance = Column(Boolean, default=False)
    sku = Column(String, nullable=True)

    takeoff = relationship("Takeoff", back_populates="items")


class LaborTemplate(Base):
    """Production-rate template — seeded from DEFAULT_LABOR_TEMPLATES on startup."""
    __tablename__ = "labor_templates"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String, unique=True, nullable=False)
    rates_json = Column(JSON, default=dict)
    production_json = Column(JSON, default=dict)
    created_at = Column(DateTime, default=datetime.utcnow)


class LaborPlan(Base):
    __tablename__ = "labor_plans"

    id = Column(Integer, primary_key=True, index=True)
    project_id = Column(Integer, ForeignKey("projects.id"), unique=True, nullable=False)
    template_id = Column(Integer, ForeignKey("labor_templates.id"), nullable=True)
    include_demo = Column(Boolean, default=False)
    overrides_json = Column(JSON, default=dict)
    tasks_json = Column(JSON, default=list)
    total_hours = Column(Float, default=0.0)
    total_labor_cost = Column(Float, default=0.0)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    project = relationship("Project", back_populates="labor_plan")
    template = relationship("LaborTemplate")


class Estimate(Base):
    __tablename__ = "estimates"

    id = Column(Integer, primary_key=True, index=True)
    project_id = Column(Integer, ForeignKey("projects.id"), unique=True, nullable=False)
    overhead_pct = Column(Float, nullable=False)
    profit_pct = Column(Float, nullable=False)
    tax_pct = Column(Float, nullable=False)
    tax_mode = Column(String, default="materials_only")
    subtotal_materials = Column(Float, default=0.0)
    subtotal_labor = Column(Float, default=0.0)
    overhead_amount = Column(Float, default=0.0)
    profit_amount = Column(Float, default=0.0)
    tax_amount = Column(Float, default=0.0)
    grand_total = Column(Float, default=0.0)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    project = relationship("Project", back_populates="estimate")
