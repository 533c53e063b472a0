"""
Operational roster service
Derives who works AM/PM on a date from home-boutique employees, their
effective-dated team rotation, approved leave, and active shift overrides
(including guest coverage hosted by another boutique).

Data for a whole date range is fetched once into a RosterContext; the
per-day merge is pure and deterministic.
"""
import logging
from dataclasses import dataclass, field
from datetime import date, timedelta
from enum import Enum
from typing import Optional, Union

from sqlalchemy import or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from retailops.core.config import Settings
from retailops.core.timeutils import is_friday, week_index_in_year
from retailops.models.employee import Employee, EmployeeTeamAssignment, Team
from retailops.models.leave import APPROVED_LEAVE_STATUSES, LeaveRequest
from retailops.models.schedule import ShiftOverride, ShiftType
from retailops.services.effective_dating import EffectiveDatedIndex

logger = logging.getLogger(__name__)


class ShiftBucket(str, Enum):
    AM = "AM"
    PM = "PM"


class Availability(str, Enum):
    WORK = "WORK"
    OFF = "OFF"
    LEAVE = "LEAVE"


# Every ShiftType member must be listed; None means "not working this shift"
_SHIFT_BUCKETS: dict[ShiftType, Optional[ShiftBucket]] = {
    ShiftType.MORNING: ShiftBucket.AM,
    ShiftType.EVENING: ShiftBucket.PM,
    ShiftType.NONE: None,
    ShiftType.COVER_RASHID_AM: ShiftBucket.AM,
    ShiftType.COVER_RASHID_PM: ShiftBucket.PM,
}

if set(_SHIFT_BUCKETS) != set(ShiftType):
    raise RuntimeError("Shift bucket table must cover every ShiftType")


def shift_bucket(raw: Union[ShiftType, str]) -> Optional[ShiftBucket]:
    """
    Bucket an override shift falls in, at home or as a guest elsewhere

    NONE explicitly means "not covering" (off at home, absent as a guest).
    Values outside ShiftType fail closed the same way and are logged so they
    can be investigated; new home overrides are validated on write.
    """
    if not isinstance(raw, ShiftType):
        try:
            raw = ShiftType(raw)
        except ValueError:
            logger.warning(f"Unrecognized override shift {raw!r}; treated as not covering")
            return None
    return _SHIFT_BUCKETS[raw]


def base_shift_for(team: Team, day: date, ramadan: bool) -> ShiftBucket:
    """
    Default shift from team rotation

    Even weeks: team A mornings, team B evenings; odd weeks swap.
    Friday is evening-only outside Ramadan.
    """
    if is_friday(day) and not ramadan:
        return ShiftBucket.PM
    even_week = week_index_in_year(day) % 2 == 0
    if team == Team.A:
        return ShiftBucket.AM if even_week else ShiftBucket.PM
    return ShiftBucket.PM if even_week else ShiftBucket.AM


@dataclass(frozen=True)
class RosterEmployee:
    emp_id: str
    name: str
    boutique_id: str
    team: Optional[Team] = None
    is_guest: bool = False
    host_boutique_id: Optional[str] = None


@dataclass
class RosterForDate:
    """Roster for one date; every list is sorted by (name, emp_id)"""
    date: date
    am: list[RosterEmployee] = field(default_factory=list)
    pm: list[RosterEmployee] = field(default_factory=list)
    off: list[RosterEmployee] = field(default_factory=list)
    leave: list[RosterEmployee] = field(default_factory=list)
    away: list[RosterEmployee] = field(default_factory=list)

    @property
    def am_count(self) -> int:
        return len(self.am)

    @property
    def pm_count(self) -> int:
        return len(self.pm)

    @property
    def guests(self) -> list[RosterEmployee]:
        return [emp for emp in self.am + self.pm if emp.is_guest]

    def bucket_of(self, emp_id: str) -> Optional[ShiftBucket]:
        if any(emp.emp_id == emp_id for emp in self.am):
            return ShiftBucket.AM
        if any(emp.emp_id == emp_id for emp in self.pm):
            return ShiftBucket.PM
        return None


def _sort_key(emp: RosterEmployee) -> tuple[str, str]:
    return (emp.name.casefold(), emp.emp_id)


@dataclass
class RosterContext:
    """
    Everything needed to build rosters for [start, end) across a set of boutiques
    """
    boutique_ids: list[str]
    start: date
    end: date
    ramadan_range: tuple[date, date]
    employees: list[Employee]
    home_overrides: dict[tuple[str, date], ShiftOverride]
    hosted_overrides: dict[date, list[tuple[ShiftOverride, Employee]]]
    away_overrides: dict[tuple[str, date], ShiftOverride]
    leave_ranges: dict[str, list[tuple[date, date]]]
    teams: EffectiveDatedIndex[str, Team]

    def is_ramadan(self, day: date) -> bool:
        return self.ramadan_range[0] <= day <= self.ramadan_range[1]

    def team_on(self, emp: Employee, day: date) -> Team:
        return self.teams.value_at(emp.emp_id, day, default=emp.team)

    def is_on_leave(self, emp_id: str, day: date) -> bool:
        return any(start <= day <= end for start, end in self.leave_ranges.get(emp_id, ()))

    def availability(self, emp: Employee, day: date) -> Availability:
        if self.is_on_leave(emp.emp_id, day):
            return Availability.LEAVE
        if emp.weekly_off_day is not None and emp.weekly_off_day == day.weekday():
            return Availability.OFF
        return Availability.WORK

    def shift_for(self, emp: Employee, day: date) -> Optional[ShiftBucket]:
        """
        Effective home-boutique shift, or None when not working

        Leave always wins. An active override replaces the default pattern
        (including the weekly off day); otherwise team rotation applies.
        """
        if self.is_on_leave(emp.emp_id, day):
            return None
        override = self.home_overrides.get((emp.emp_id, day))
        if override is not None:
            return shift_bucket(override.override_shift)
        if self.availability(emp, day) != Availability.WORK:
            return None
        return base_shift_for(self.team_on(emp, day), day, self.is_ramadan(day))

    def count_overrides(self, emp_id: str) -> int:
        """Active home overrides for the employee inside the loaded range"""
        return sum(1 for (oid, _day) in self.home_overrides if oid == emp_id)

    def roster_for(self, day: date) -> RosterForDate:
        roster = RosterForDate(date=day)

        for emp in self.employees:
            entry = RosterEmployee(emp.emp_id, emp.name, emp.boutique_id, self.team_on(emp, day))
            if self.is_on_leave(emp.emp_id, day):
                roster.leave.append(entry)
                continue
            if (emp.emp_id, day) in self.away_overrides:
                roster.away.append(entry)
                continue
            bucket = self.shift_for(emp, day)
            if bucket == ShiftBucket.AM:
                roster.am.append(entry)
            elif bucket == ShiftBucket.PM:
                roster.pm.append(entry)
            else:
                roster.off.append(entry)

        for override, emp in self.hosted_overrides.get(day, ()):
            if self.is_on_leave(emp.emp_id, day):
                continue
            bucket = shift_bucket(override.override_shift)
            if bucket is None:
                continue
            guest = RosterEmployee(
                emp.emp_id,
                emp.name,
                emp.boutique_id,
                self.team_on(emp, day),
                is_guest=True,
                host_boutique_id=override.boutique_id,
            )
            (roster.am if bucket == ShiftBucket.AM else roster.pm).append(guest)

        for bucket_list in (roster.am, roster.pm, roster.off, roster.leave, roster.away):
            bucket_list.sort(key=_sort_key)
        return roster


class RosterService:
    """
    Service class for roster data loading
    """

    @staticmethod
    async def get_operational_employees(db: AsyncSession, boutique_ids: list[str]) -> list[Employee]:
        """Active, non-placeholder employees home-assigned to the boutiques"""
        if not boutique_ids:
            return []
        result = await db.execute(
            select(Employee)
            .where(
                Employee.boutique_id.in_(boutique_ids),
                Employee.active.is_(True),
                Employee.is_system_only.is_(False),
            )
            .order_by(Employee.name, Employee.emp_id)
        )
        return list(result.scalars().all())

    @staticmethod
    async def load_context(
        db: AsyncSession,
        boutique_ids: list[str],
        start: date,
        end: date,
        settings: Settings,
    ) -> RosterContext:
        """
        Fetch roster inputs for [start, end) in a fixed number of queries

        Args:
            db: Database session
            boutique_ids: Resolved scope
            start: First date (inclusive)
            end: Last date (exclusive)
            settings: Provides the Ramadan window

        Returns:
            RosterContext ready for per-day roster_for() calls
        """
        employees = await RosterService.get_operational_employees(db, boutique_ids)
        home_ids = [emp.emp_id for emp in employees]
        employee_map = {emp.emp_id: emp for emp in employees}

        override_filters = [ShiftOverride.boutique_id.in_(boutique_ids)] if boutique_ids else []
        if home_ids:
            override_filters.append(ShiftOverride.emp_id.in_(home_ids))
        overrides: list[ShiftOverride] = []
        if override_filters:
            result = await db.execute(
                select(ShiftOverride).where(
                    ShiftOverride.is_active.is_(True),
                    ShiftOverride.date >= start,
                    ShiftOverride.date < end,
                    or_(*override_filters),
                )
            )
            overrides = list(result.scalars().all())

        # Guests are home-assigned outside the scope; load them separately
        guest_ids = {o.emp_id for o in overrides if o.emp_id not in employee_map}
        guest_map: dict[str, Employee] = {}
        if guest_ids:
            result = await db.execute(
                select(Employee).where(
                    Employee.emp_id.in_(guest_ids),
                    Employee.active.is_(True),
                    Employee.is_system_only.is_(False),
                )
            )
            guest_map = {emp.emp_id: emp for emp in result.scalars().all()}

        home_overrides: dict[tuple[str, date], ShiftOverride] = {}
        hosted: dict[date, list[tuple[ShiftOverride, Employee]]] = {}
        away: dict[tuple[str, date], ShiftOverride] = {}
        for override in overrides:
            emp = employee_map.get(override.emp_id) or guest_map.get(override.emp_id)
            if emp is None:
                continue
            if override.boutique_id == emp.boutique_id:
                if emp.emp_id in employee_map:
                    home_overrides[(emp.emp_id, override.date)] = override
                continue
            covering = shift_bucket(override.override_shift) is not None
            if override.boutique_id in boutique_ids:
                hosted.setdefault(override.date, []).append((override, emp))
            if emp.emp_id in employee_map and covering:
                away[(emp.emp_id, override.date)] = override

        all_ids = list(set(home_ids) | set(guest_map))
        leave_ranges: dict[str, list[tuple[date, date]]] = {}
        team_records: list[tuple[str, date, Team]] = []
        if all_ids:
            result = await db.execute(
                select(LeaveRequest.emp_id, LeaveRequest.start_date, LeaveRequest.end_date).where(
                    LeaveRequest.emp_id.in_(all_ids),
                    LeaveRequest.status.in_(APPROVED_LEAVE_STATUSES),
                    LeaveRequest.start_date < end,
                    LeaveRequest.end_date >= start,
                )
            )
            for emp_id, leave_start, leave_end in result.all():
                leave_ranges.setdefault(emp_id, []).append((leave_start, leave_end))

            result = await db.execute(
                select(
                    EmployeeTeamAssignment.emp_id,
                    EmployeeTeamAssignment.effective_from,
                    EmployeeTeamAssignment.team,
                ).where(
                    EmployeeTeamAssignment.emp_id.in_(all_ids),
                    EmployeeTeamAssignment.effective_from < end,
                )
            )
            team_records = [(emp_id, eff, team) for emp_id, eff, team in result.all()]

        return RosterContext(
            boutique_ids=list(boutique_ids),
            start=start,
            end=end,
            ramadan_range=settings.ramadan_range,
            employees=employees,
            home_overrides=home_overrides,
            hosted_overrides=hosted,
            away_overrides=away,
            leave_ranges=leave_ranges,
            teams=EffectiveDatedIndex(team_records),
        )

    @staticmethod
    async def roster_for_date(
        db: AsyncSession, day: date, boutique_ids: list[str], settings: Settings
    ) -> RosterForDate:
        context = await RosterService.load_context(db, boutique_ids, day, day + timedelta(days=1), settings)
        return context.roster_for(day)

    @staticmethod
    async def get_employee_team(db: AsyncSession, emp_id: str, on: date) -> Optional[Team]:
        """Team on a date: latest assignment effective on or before it, else the employee's team"""
        employee = await db.get(Employee, emp_id)
        if employee is None:
            return None
        result = await db.execute(
            select(EmployeeTeamAssignment.emp_id, EmployeeTeamAssignment.effective_from, EmployeeTeamAssignment.team)
            .where(EmployeeTeamAssignment.emp_id == emp_id, EmployeeTeamAssignment.effective_from <= on)
        )
        index = EffectiveDatedIndex(result.all())
        return index.value_at(emp_id, on, default=employee.team)
