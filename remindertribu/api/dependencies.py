"""Request-scoped wiring.

The store and the gateway are built once in ``create_app`` and kept on
``app.state``; runners are cheap and are assembled per request around them.
"""
from typing import Annotated, TypeAlias

from fastapi import Depends, Request

from remindertribu.bot.whatsapp_client import WhatsAppClient
from remindertribu.core.config import BaseAppSettings
from remindertribu.services.eligibility import ReminderPolicy
from remindertribu.services.member_store import MemberStore
from remindertribu.services.phone_apply_runner import PhoneApplyRunner
from remindertribu.services.reminder_runner import ReminderRunner


def get_app_settings(request: Request) -> BaseAppSettings:
    return request.app.state.settings


def get_store(request: Request) -> MemberStore:
    return request.app.state.store


def get_gateway(request: Request) -> WhatsAppClient:
    return request.app.state.gateway


SettingsDep: TypeAlias = Annotated[BaseAppSettings, Depends(get_app_settings)]
StoreDep: TypeAlias = Annotated[MemberStore, Depends(get_store)]
GatewayDep: TypeAlias = Annotated[WhatsAppClient, Depends(get_gateway)]


def get_policy(settings: SettingsDep) -> ReminderPolicy:
    return ReminderPolicy.from_settings(settings)


def get_reminder_runner(request: Request, store: StoreDep, gateway: GatewayDep, settings: SettingsDep) -> ReminderRunner:
    return ReminderRunner.from_settings(store, gateway, settings, clock=request.app.state.clock)


def get_phone_apply_runner(request: Request, store: StoreDep) -> PhoneApplyRunner:
    return PhoneApplyRunner(store, clock=request.app.state.clock)


PolicyDep: TypeAlias = Annotated[ReminderPolicy, Depends(get_policy)]
ReminderRunnerDep: TypeAlias = Annotated[ReminderRunner, Depends(get_reminder_runner)]
PhoneApplyRunnerDep: TypeAlias = Annotated[PhoneApplyRunner, Depends(get_phone_apply_runner)]
