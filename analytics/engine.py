import logging
from datetime import date, timedelta

import pandas as pd

from atm.locator import ATMFeedbackManager
from appointments.manager import AppointmentManager
from rewards.ledger import RewardLedger, milestone_badge
from storage.models import AppointmentStatus, TicketPriority, TicketStatus
from tickets.manager import TicketManager

logger = logging.getLogger(__name__)

OPEN_TICKET_STATUSES = {TicketStatus.PENDING, TicketStatus.UNDER_REVIEW, TicketStatus.IN_PROGRESS}


class AnalyticsEngine:
    @staticmethod
    def get_dashboard_metrics(store, today=None):
        """Get comprehensive dashboard metrics"""
        today = today or date.today()
        tickets = TicketManager(store).list_tickets()
        appointments = AppointmentManager(store).list_requests()
        feedback = ATMFeedbackManager(store).list_feedback()

        metrics = {
            'total_tickets': len(tickets),
            'open_tickets': sum(1 for t in tickets if t.status in OPEN_TICKET_STATUSES),
            'completed_tickets': sum(1 for t in tickets if t.status == TicketStatus.COMPLETED),
            'rejected_tickets': sum(1 for t in tickets if t.status == TicketStatus.REJECTED),
            'rewarded_tickets': sum(1 for t in tickets if t.rewarded),
            'status_distribution': {s.value: 0 for s in TicketStatus},
            'priority_distribution': {p.value: 0 for p in TicketPriority},
            'total_appointments': len(appointments),
            'pending_appointments': sum(1 for a in appointments if a.status == AppointmentStatus.PENDING),
            'atm_feedback_count': len(feedback),
            'feedback_by_atm': {},
            'total_reward_points': sum(RewardLedger(store).all_points().values()),
            'daily_trends': [],
        }

        if tickets:
            df = pd.DataFrame([
                {'status': t.status.value, 'priority': t.priority.value, 'created_at': t.created_at}
                for t in tickets
            ])
            metrics['status_distribution'].update(df['status'].value_counts().to_dict())
            metrics['priority_distribution'].update(df['priority'].value_counts().to_dict())

            created = pd.to_datetime(df['created_at'], errors='coerce', utc=True).dropna()
            window_start = today - timedelta(days=29)
            days = created.dt.date
            recent = days[(days >= window_start) & (days <= today)]
            if not recent.empty:
                counts = recent.value_counts().sort_index()
                metrics['daily_trends'] = [(day, int(count)) for day, count in counts.items()]

        if feedback:
            metrics['feedback_by_atm'] = (
                pd.Series([f.atm_name for f in feedback]).value_counts().to_dict()
            )

        logger.debug(f"Computed {len(metrics)} dashboard metrics")
        return metrics

    @staticmethod
    def get_reward_statistics(store, query=""):
        """Users with points (highest first), totals and milestone badges"""
        points = RewardLedger(store).all_points()
        df = pd.DataFrame(
            [{'national_number': user, 'points': value} for user, value in points.items()],
            columns=['national_number', 'points']
        )
        df = df[df['points'] > 0].sort_values('points', ascending=False, kind='stable')

        total_points = int(df['points'].sum())
        total_users = len(df)

        q = query.strip().lower()
        if q:
            df = df[df['national_number'].str.lower().str.contains(q, regex=False)]

        users = [
            {
                'national_number': row.national_number,
                'points': int(row.points),
                'badge': milestone_badge(int(row.points)),
            }
            for row in df.itertuples(index=False)
        ]

        return {
            'users': users,
            'total_points': total_points,
            'total_users': total_users,
            'average_points': int(total_points / total_users + 0.5) if total_users else 0,
        }
