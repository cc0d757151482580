import streamlit as st
import plotly.express as px
import plotly.graph_objects as go
import pandas as pd

STATUS_COLORS = {
    "pending": "#7f8c8d",
    "under-review": "#f1c40f",
    "in-progress": "#2980b9",
    "completed": "#27ae60",
    "rejected": "#c0392b",
    "confirmed": "#8e44ad",
    "checked-in": "#16a085",
    "cancelled": "#95a5a6",
    "active": "#27ae60",
    "maintenance": "#f1c40f",
    "out-of-service": "#c0392b",
}

PRIORITY_ICONS = {
    "urgent": "🔴",
    "high": "🟠",
    "medium": "🟡",
    "low": "🟢",
}


class UIComponents:
    @staticmethod
    def status_label(status: str) -> str:
        """'in-progress' -> 'In Progress'"""
        return " ".join(word.capitalize() for word in status.split("-"))

    @staticmethod
    def status_badge(status: str) -> str:
        color = STATUS_COLORS.get(status, "#7f8c8d")
        return (
            f"<span class='badge' style='background:{color};color:white;"
            f"padding:2px 8px;border-radius:8px'>{UIComponents.status_label(status)}</span>"
        )

    @staticmethod
    def priority_badge(priority: str) -> str:
        return f"<span class='badge'>{PRIORITY_ICONS.get(priority, '⚪')} {priority}</span>"

    @staticmethod
    def styled_metric(value, label, delta=None, delta_color="normal"):
        """Create a styled metric card"""
        st.metric(
            label=label,
            value=value,
            delta=delta,
            delta_color=delta_color
        )

    @staticmethod
    def create_status_chart(distribution: dict):
        """Donut chart of ticket counts per status"""
        data = {k: v for k, v in distribution.items() if v}
        if not data:
            return None

        df = pd.DataFrame(list(data.items()), columns=["Status", "Count"])
        df["Status"] = df["Status"].apply(UIComponents.status_label)
        fig = px.pie(
            df,
            values="Count",
            names="Status",
            title="Tickets by Status",
            hole=0.4,
        )
        fig.update_layout(height=320, margin=dict(l=10, r=10, t=60, b=20))
        return fig

    @staticmethod
    def create_trend_chart(daily_data):
        """Create a ticket trend chart"""
        if not daily_data:
            return None

        dates = [row[0] for row in daily_data]
        counts = [row[1] for row in daily_data]

        fig = px.area(
            x=dates,
            y=counts,
            title="📈 Ticket Trends (Last 30 Days)",
            labels={'x': 'Date', 'y': 'Number of Tickets'},
        )

        fig.update_traces(
            mode="lines+markers",
            line=dict(width=2, color="royalblue"),
            marker=dict(size=6, symbol="circle", color="darkblue")
        )
        fig.update_layout(
            height=320,
            template="plotly_white",
            xaxis=dict(showgrid=True, tickangle=-45),
            yaxis=dict(showgrid=True, rangemode="tozero"),
            margin=dict(l=40, r=20, t=60, b=40)
        )
        fig.update_traces(
            hovertemplate="Date: %{x}<br>Tickets: %{y}<extra></extra>"
        )

        return fig

    @staticmethod
    def create_progress_gauge(points: int, threshold: int):
        """Gauge of points against the next milestone threshold"""
        fig = go.Figure(go.Indicator(
            mode="gauge+number",
            value=points,
            title={'text': f"Progress to {threshold} points", 'font': {'size': 14}},
            gauge={
                'axis': {'range': [0, threshold]},
                'bar': {'color': "#2980b9"},
                'threshold': {
                    'line': {'color': "black", 'width': 2},
                    'thickness': 0.6,
                    'value': threshold
                }
            }
        ))
        fig.update_layout(height=220, margin=dict(l=10, r=10, t=60, b=20))
        return fig

    @staticmethod
    def create_points_chart(users):
        """Bar chart of the top reward point holders"""
        if not users:
            return None

        df = pd.DataFrame(users[:10])
        df["badge"] = df["badge"].fillna("No milestone")
        fig = px.bar(
            df,
            x="national_number",
            y="points",
            color="badge",
            title="🏆 Top Reward Members",
            labels={'national_number': 'National Number', 'points': 'Points', 'badge': 'Milestone'},
        )
        fig.update_layout(height=360, template="plotly_white", margin=dict(l=40, r=20, t=60, b=40))
        return fig
