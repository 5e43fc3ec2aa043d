"""
Ticket Enums

One vocabulary per ticket field. Values are the canonical English names
stored in the relational store; labels are the French strings used by the
tabular store and by older ticket rows.

Mapping tables:

    Priority        Low                 Basse
                    Medium              Moyenne   (legacy: Normale, medium)
                    High                Haute

    TicketStatus    New                 Nouveau
                    WaitingCustomer     En attente du client
                    WaitingInstaller    En attente de l'installateur
                    WaitingTechSupport  En attente retour service technique
                    Closed              Fermé
                    Open                Ouvert    (legacy: En cours)

    TicketType      TechnicalSupport    SAV / question technique
                    DebtCollection      Recouvrement
                    InstallerComplaint  Plainte Installateur
                    PaymentDetailsChange changement date prélèvement/RIB
                    EarlyTermination    Résiliation anticipée / cession de contrat
                    ContractAddition    Ajout contrat / Flexibilité

    TicketOrigin    Company             SunLib
                    Subscriber          Abonné
                    Installer           Installateur

    TicketChannel   ContactForm         Formulaire de contact
                    Email               Mail
                    Phone               Téléphone
                    SubscriberPortal    Site abonné
                    MobileApp           Application SunLib
"""

from enum import Enum
from typing import Dict, Tuple


class LabeledEnum(str, Enum):
    """str enum with a tabular-store label and tolerant parsing"""

    @classmethod
    def _labels(cls) -> Dict[str, str]:
        raise NotImplementedError

    @classmethod
    def _legacy(cls) -> Dict[str, str]:
        return {}

    @property
    def label(self) -> str:
        return self._labels()[self.value]

    @classmethod
    def to_label(cls, value: str) -> str:
        return cls.parse(value).label

    @classmethod
    def parse(cls, value) -> "LabeledEnum":
        """Accept an enum member, its value, its label or a legacy spelling"""
        if isinstance(value, cls):
            return value
        if value is None:
            raise ValueError(f"{cls.__name__}: missing value")

        key = str(value).strip().lower()
        for member in cls:
            if key == member.value.lower() or key == member.label.lower():
                return member
        for legacy, canonical in cls._legacy().items():
            if key == legacy.lower():
                return cls(canonical)
        raise ValueError(f"{cls.__name__}: unknown value {value!r}")


class Priority(LabeledEnum):
    LOW = "Low"
    MEDIUM = "Medium"
    HIGH = "High"

    @classmethod
    def _labels(cls) -> Dict[str, str]:
        return {"Low": "Basse", "Medium": "Moyenne", "High": "Haute"}

    @classmethod
    def _legacy(cls) -> Dict[str, str]:
        return {"Normale": "Medium"}


class TicketStatus(LabeledEnum):
    NEW = "New"
    WAITING_CUSTOMER = "WaitingCustomer"
    WAITING_INSTALLER = "WaitingInstaller"
    WAITING_TECH_SUPPORT = "WaitingTechSupport"
    CLOSED = "Closed"
    OPEN = "Open"

    @classmethod
    def _labels(cls) -> Dict[str, str]:
        return {
            "New": "Nouveau",
            "WaitingCustomer": "En attente du client",
            "WaitingInstaller": "En attente de l'installateur",
            "WaitingTechSupport": "En attente retour service technique",
            "Closed": "Fermé",
            "Open": "Ouvert",
        }

    @classmethod
    def _legacy(cls) -> Dict[str, str]:
        return {"En cours": "Open", "Ferme": "Closed"}


class TicketType(LabeledEnum):
    TECHNICAL_SUPPORT = "TechnicalSupport"
    DEBT_COLLECTION = "DebtCollection"
    INSTALLER_COMPLAINT = "InstallerComplaint"
    PAYMENT_DETAILS_CHANGE = "PaymentDetailsChange"
    EARLY_TERMINATION = "EarlyTermination"
    CONTRACT_ADDITION = "ContractAddition"

    @classmethod
    def _labels(cls) -> Dict[str, str]:
        return {
            "TechnicalSupport": "SAV / question technique",
            "DebtCollection": "Recouvrement",
            "InstallerComplaint": "Plainte Installateur",
            "PaymentDetailsChange": "changement date prélèvement/RIB",
            "EarlyTermination": "Résiliation anticipée / cession de contrat",
            "ContractAddition": "Ajout contrat / Flexibilité",
        }


class TicketOrigin(LabeledEnum):
    COMPANY = "Company"
    SUBSCRIBER = "Subscriber"
    INSTALLER = "Installer"

    @classmethod
    def _labels(cls) -> Dict[str, str]:
        return {"Company": "SunLib", "Subscriber": "Abonné", "Installer": "Installateur"}


class TicketChannel(LabeledEnum):
    CONTACT_FORM = "ContactForm"
    EMAIL = "Email"
    PHONE = "Phone"
    SUBSCRIBER_PORTAL = "SubscriberPortal"
    MOBILE_APP = "MobileApp"

    @classmethod
    def _labels(cls) -> Dict[str, str]:
        return {
            "ContactForm": "Formulaire de contact",
            "Email": "Mail",
            "Phone": "Téléphone",
            "SubscriberPortal": "Site abonné",
            "MobileApp": "Application SunLib",
        }


# Keyword rules used when drafting a ticket from an inbound email.
# First matching rule wins; keywords are matched against lowercased text.
TYPE_KEYWORDS: Tuple[Tuple[TicketType, Tuple[str, ...]], ...] = (
    (TicketType.PAYMENT_DETAILS_CHANGE, ("prélèvement", "rib", "paiement")),
    (TicketType.EARLY_TERMINATION, ("résiliation", "cession")),
    (TicketType.DEBT_COLLECTION, ("recouvrement", "facture", "impayé")),
    (TicketType.INSTALLER_COMPLAINT, ("installateur", "plainte")),
    (TicketType.CONTRACT_ADDITION, ("contrat", "ajout", "flexibilité")),
)

URGENT_KEYWORDS: Tuple[str, ...] = ("urgent", "panne", "problème grave")
